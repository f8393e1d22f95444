"""
model_store.py
~~~~~~~~~~~~~~

SQLite store for named networks.

Each row holds a network's JSON document (see ``ffnet.persistence``) along
with its architecture and training metadata, so saved models can be listed
without decoding their parameters.
"""

import json
import logging
import math
import os
import sqlite3
from contextlib import contextmanager
from typing import Any, Dict, Generator, List, Optional

from ffnet import config
from ffnet.network import Network
from ffnet.persistence import dumps, loads

# Configure module logger
logger = logging.getLogger(__name__)

DB_FILENAME = 'networks.db'


def _check_network_id(network_id: Any) -> None:
    if not network_id or not isinstance(network_id, str):
        raise ValueError("network_id must be a non-empty string")


class ModelStore:
    """
    Manages the SQLite database of saved networks.

    The ``networks`` table stores:
    - the architecture (sizes and activation tags) as JSON
    - the full network document as JSON text
    - the number of epochs trained and the last epoch's loss
    """

    def __init__(self, db_path: str):
        """
        Open (and if needed create) the database.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = db_path
        self._ensure_directory()
        self._initialize_schema()

    def _ensure_directory(self) -> None:
        db_dir = os.path.dirname(self.db_path)
        if db_dir and not os.path.exists(db_dir):
            os.makedirs(db_dir)

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager for database connections.

        Commits on success, rolls back on any error.
        """
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _initialize_schema(self) -> None:
        with self._get_connection() as conn:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS networks (
                    network_id TEXT PRIMARY KEY,
                    architecture TEXT NOT NULL,
                    document TEXT NOT NULL,
                    epochs_trained INTEGER NOT NULL DEFAULT 0,
                    final_loss REAL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            ''')
            conn.execute('''
                CREATE INDEX IF NOT EXISTS idx_created_at
                ON networks(created_at DESC)
            ''')

    def save_network(
        self,
        network: Network,
        network_id: str,
        epochs_trained: int = 0,
        final_loss: Optional[float] = None
    ) -> None:
        """
        Insert or replace a network.

        Replacing keeps the original ``created_at``.

        Args:
            network: Network to store
            network_id: Unique identifier
            epochs_trained: Total epochs the network has been trained for
            final_loss: Loss of the last training epoch, if any

        Raises:
            ValueError: If the id is empty or the metadata is out of range
        """
        _check_network_id(network_id)
        if isinstance(epochs_trained, bool) or not isinstance(epochs_trained, int) \
                or epochs_trained < 0:
            raise ValueError(
                f"epochs_trained must be a non-negative integer, got {epochs_trained!r}"
            )
        if final_loss is not None and (math.isnan(final_loss) or final_loss < 0):
            raise ValueError(f"final_loss must be non-negative, got {final_loss}")

        architecture = json.dumps({
            'sizes': network.sizes,
            'hidden_activations': [a.tag for a in network.hidden_activations],
            'output_activation': network.output_activation.tag,
        })

        with self._get_connection() as conn:
            conn.execute('''
                INSERT INTO networks
                (network_id, architecture, document, epochs_trained, final_loss)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(network_id) DO UPDATE SET
                    architecture = excluded.architecture,
                    document = excluded.document,
                    epochs_trained = excluded.epochs_trained,
                    final_loss = excluded.final_loss,
                    updated_at = CURRENT_TIMESTAMP
            ''', (network_id, architecture, dumps(network), epochs_trained, final_loss))

        logger.info(
            f"Saved network '{network_id}' with architecture {network.sizes}, "
            f"epochs_trained={epochs_trained}, final_loss={final_loss}"
        )

    def load_network(self, network_id: str) -> Optional[Network]:
        """
        Load a network by id.

        Returns:
            Network object or None if not found

        Raises:
            SerializationError: If the stored document is corrupt
        """
        _check_network_id(network_id)
        with self._get_connection() as conn:
            row = conn.execute(
                'SELECT document FROM networks WHERE network_id = ?',
                (network_id,)
            ).fetchone()

        if row is None:
            logger.warning(f"Network '{network_id}' not found")
            return None

        network = loads(row['document'])
        logger.info(f"Loaded network '{network_id}'")
        return network

    @staticmethod
    def _metadata(row: sqlite3.Row) -> Dict[str, Any]:
        architecture = json.loads(row['architecture'])
        return {
            'network_id': row['network_id'],
            'sizes': architecture['sizes'],
            'hidden_activations': architecture['hidden_activations'],
            'output_activation': architecture['output_activation'],
            'epochs_trained': row['epochs_trained'],
            'final_loss': row['final_loss'],
            'created_at': row['created_at'],
            'updated_at': row['updated_at']
        }

    def list_networks(self) -> List[Dict[str, Any]]:
        """Metadata of every stored network, newest first."""
        with self._get_connection() as conn:
            rows = conn.execute('''
                SELECT network_id, architecture, epochs_trained, final_loss,
                       created_at, updated_at
                FROM networks
                ORDER BY created_at DESC, network_id
            ''').fetchall()

        networks = [self._metadata(row) for row in rows]
        logger.debug(f"Listed {len(networks)} networks")
        return networks

    def get_metadata(self, network_id: str) -> Optional[Dict[str, Any]]:
        """Metadata of one network without decoding its parameters."""
        _check_network_id(network_id)
        with self._get_connection() as conn:
            row = conn.execute('''
                SELECT network_id, architecture, epochs_trained, final_loss,
                       created_at, updated_at
                FROM networks
                WHERE network_id = ?
            ''', (network_id,)).fetchone()

        if row is None:
            logger.warning(f"Metadata for network '{network_id}' not found")
            return None
        return self._metadata(row)

    def delete_network(self, network_id: str) -> bool:
        """
        Delete a network.

        Returns:
            bool: True if deleted, False if not found
        """
        _check_network_id(network_id)
        with self._get_connection() as conn:
            cursor = conn.execute(
                'DELETE FROM networks WHERE network_id = ?',
                (network_id,)
            )
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info(f"Deleted network '{network_id}'")
        else:
            logger.warning(f"Could not delete network '{network_id}': not found")
        return deleted

    def delete_old_networks(self, days: float) -> int:
        """
        Delete networks created more than ``days`` days ago.

        Returns:
            int: Number of networks deleted

        Raises:
            ValueError: If days is negative
        """
        if days < 0:
            raise ValueError(f"days must be non-negative, got {days}")

        with self._get_connection() as conn:
            cursor = conn.execute('''
                DELETE FROM networks
                WHERE julianday('now') - julianday(created_at) > ?
            ''', (days,))
            deleted = cursor.rowcount

        logger.info(f"Deleted {deleted} network(s) older than {days} day(s)")
        return deleted


def _store(model_dir: Optional[str]) -> ModelStore:
    return ModelStore(os.path.join(model_dir or config.model_dir(), DB_FILENAME))


def save_network(
    network: Network,
    network_id: str,
    model_dir: Optional[str] = None,
    epochs_trained: int = 0,
    final_loss: Optional[float] = None
) -> None:
    """
    Save a network to the store in ``model_dir``.

    ``model_dir`` defaults to ``FFNET_MODEL_DIR`` (or ``models``).

    Example:
        >>> net = Network(2, [3, 3], 1, rng=0)
        >>> save_network(net, "demo", epochs_trained=0)
    """
    _store(model_dir).save_network(network, network_id, epochs_trained, final_loss)


def load_network(network_id: str, model_dir: Optional[str] = None) -> Optional[Network]:
    """Load a network from the store, or None if it does not exist."""
    return _store(model_dir).load_network(network_id)


def list_saved_networks(model_dir: Optional[str] = None) -> List[Dict[str, Any]]:
    """Metadata of every network in the store, newest first."""
    return _store(model_dir).list_networks()


def get_network_metadata(
    network_id: str,
    model_dir: Optional[str] = None
) -> Optional[Dict[str, Any]]:
    return _store(model_dir).get_metadata(network_id)


def delete_network(network_id: str, model_dir: Optional[str] = None) -> bool:
    return _store(model_dir).delete_network(network_id)


def delete_old_networks(days: float, model_dir: Optional[str] = None) -> int:
    return _store(model_dir).delete_old_networks(days)
