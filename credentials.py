"""
Salt management and credential derivation for organizer accounts.

The salt component is a single deployment-wide secret stored in the
``salts`` table. Every organizer's full salt is that component followed by
the organizer's email, so hashes can be recomputed from the stored
component alone.
"""

import logging

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError

from crypto_utils import new_salt_component, compose_salt, derive_credential, credentials_match
from errors import PersistenceError, NoSaltConfiguredError, SaltAlreadyConfiguredError
from models import Salt, User

log = logging.getLogger(__name__)


def lock_salts(db):
    """Hold the write lock on ``salts`` for the rest of the session transaction."""
    conn = db.connection()
    dialect = conn.dialect.name
    if dialect == "sqlite":
        # pysqlite only opens a transaction before DML; take the RESERVED lock now
        conn.exec_driver_sql("BEGIN IMMEDIATE")
    elif dialect == "postgresql":
        conn.exec_driver_sql("LOCK TABLE salts IN EXCLUSIVE MODE")
    else:
        log.warning("No salt table lock for dialect %s; concurrent salt commands are not serialized", dialect)


class SaltManager:
    """Creates and reads the deployment salt component."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def generate(self) -> str:
        return new_salt_component()

    def fetch_current(self) -> str:
        """Return the salt component of the first ``salts`` row.

        Not cached: every call reads through to the database.
        """
        db = self.session_factory()
        try:
            component = db.execute(
                select(Salt.salt).order_by(Salt.id).limit(1)
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to read salt from database: {e}") from e
        finally:
            db.close()

        if component is None:
            raise NoSaltConfiguredError("No salt component configured. Run the 'salt' command first.")
        return component

    def store(self, component: str) -> int:
        """Insert the salt row, refusing if one already exists.

        The table write lock is taken before the existence check, so a
        concurrent second store waits for the first to commit and is refused.
        """
        db = self.session_factory()
        try:
            lock_salts(db)
            existing = db.execute(select(func.count(Salt.id))).scalar_one()
            if existing:
                raise SaltAlreadyConfiguredError(
                    "A salt component is already configured; replacing it would invalidate every stored password."
                )
            row = Salt(salt=component)
            db.add(row)
            db.flush()
            salt_id = row.id
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Failed to store salt in database: {e}") from e
        finally:
            db.close()

        log.info("Stored salt component id=%s", salt_id)
        return salt_id


class CredentialDeriver:
    """Turns (email, plaintext password) into a storable hash."""

    def __init__(self, salt_manager: SaltManager):
        self.salt_manager = salt_manager

    def compose_salt(self, identifier: str) -> bytes:
        return compose_salt(self.salt_manager.fetch_current(), identifier)

    def derive(self, identifier: str, password: str) -> str:
        return derive_credential(self.salt_manager.fetch_current(), identifier, password)

    def verify(self, identifier: str, password: str, stored_hash_hex: str) -> bool:
        """Recompute the hash and compare it to ``stored_hash_hex`` in constant time."""
        return credentials_match(self.derive(identifier, password), stored_hash_hex)


def add_organizer(session_factory, email: str, password_hash: str) -> int:
    db = session_factory()
    try:
        user = User(email=email, password=password_hash)
        db.add(user)
        db.flush()
        user_id = user.id
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Failed to add organizer to database: {e}") from e
    finally:
        db.close()
    return user_id


def issue_organizer(session_factory, email: str, password: str) -> int:
    """Derive the credential for ``email`` and store the account.

    Nothing is written if the salt lookup fails.
    """
    deriver = CredentialDeriver(SaltManager(session_factory))
    password_hash = deriver.derive(email, password)
    return add_organizer(session_factory, email, password_hash)
