#!/usr/bin/env python3
"""
Train a small network on a single sample and report the results.

Usage:
    python scripts/train_demo.py [output_dir]

The script will:
1. Build a 2-[3,3]-1 network (ReLU and Tanh hidden layers, Sigmoid output)
2. Overfit it to the sample [0.5, -0.2] -> [1.0]
3. Save it as JSON and record it in the model store
4. Plot the loss curve to loss_curve.png

Settings come from LOG_LEVEL, FFNET_LEARNING_RATE and FFNET_EPOCHS.
"""

import os
import sys
from typing import List

# Use non-GUI backend for matplotlib
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from ffnet import Activation, Network, config, load, save
from ffnet.model_store import ModelStore, DB_FILENAME

SEED = 42
SAMPLE_INPUT = [0.5, -0.2]
SAMPLE_TARGET = [1.0]


def plot_losses(losses: List[float], filepath: str) -> None:
    """
    Render the per-epoch loss curve.

    Parameters:
    -----------
    losses : list of float
        Loss of each epoch
    filepath : str
        Output path for the PNG file
    """
    fig, ax = plt.subplots(figsize=(6, 4))
    ax.plot(range(1, len(losses) + 1), losses)
    ax.set_xlabel('epoch')
    ax.set_ylabel('MSE loss')
    ax.set_yscale('log')
    ax.set_title('Training loss')
    fig.tight_layout()
    fig.savefig(filepath)
    plt.close(fig)


def main() -> int:
    config.configure_logging()

    output_dir = sys.argv[1] if len(sys.argv) > 1 else config.model_dir()
    os.makedirs(output_dir, exist_ok=True)

    epochs = config.epochs()
    learning_rate = config.learning_rate()

    net = Network(
        2, [3, 3], 1,
        hidden_activations=[Activation.RELU, Activation.TANH],
        output_activation=Activation.SIGMOID,
        rng=SEED
    )

    print(f"🧠 Network: {net}")
    print(f"   Input:  {SAMPLE_INPUT}")
    print(f"   Output: {net.predict(SAMPLE_INPUT).tolist()}")

    print(f"\n🏋️  Training for {epochs} epochs at learning rate {learning_rate}")
    losses = net.fit([SAMPLE_INPUT], [SAMPLE_TARGET], epochs, learning_rate)
    if not losses:
        print("⚠️  No epochs requested, nothing to do")
        return 0

    prediction = net.predict(SAMPLE_INPUT).tolist()
    print(f"   First loss: {losses[0]:.6f}")
    print(f"   Last loss:  {losses[-1]:.6f}")
    print(f"   Output after training: {prediction}")

    model_path = os.path.join(output_dir, 'demo_network.json')
    save(net, model_path)
    restored = load(model_path)
    if restored.predict(SAMPLE_INPUT).tolist() != prediction:
        print("❌ Reloaded network disagrees with the trained one")
        return 1
    print(f"\n💾 Saved to {model_path}")

    store = ModelStore(os.path.join(output_dir, DB_FILENAME))
    store.save_network(net, 'demo', epochs_trained=epochs, final_loss=losses[-1])
    print(f"   Recorded as 'demo' in {store.db_path}")

    plot_path = os.path.join(output_dir, 'loss_curve.png')
    plot_losses(losses, plot_path)
    print(f"📈 Loss curve written to {plot_path}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
