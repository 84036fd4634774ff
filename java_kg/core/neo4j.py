"""Neo4j connection utilities.

Driver lifecycle lives here so the persistence services depend on a single
place for graph DB connectivity.
"""

from __future__ import annotations

import threading

from neo4j import AsyncDriver, AsyncGraphDatabase

from java_kg.core.config import Settings, settings as default_settings


class Neo4jConnection:
    """Singleton-style Neo4j driver manager."""

    _driver: AsyncDriver | None = None
    _lock = threading.Lock()

    @classmethod
    def get_driver(cls, settings: Settings | None = None) -> AsyncDriver:
        """Return a cached Neo4j AsyncDriver, creating it if needed.

        Thread-safe: double-checked locking prevents several drivers being
        created during concurrent initialization.

        Raises:
            ValueError: If the connection settings are incomplete.
        """
        if cls._driver is not None:
            return cls._driver

        settings = settings or default_settings
        with cls._lock:
            if cls._driver is None:
                if not settings.neo4j_uri:
                    raise ValueError("JAVA_KG_NEO4J_URI is not configured")
                if not settings.neo4j_username:
                    raise ValueError("JAVA_KG_NEO4J_USERNAME is not configured")
                if not settings.neo4j_password:
                    raise ValueError("JAVA_KG_NEO4J_PASSWORD is not configured")

                cls._driver = AsyncGraphDatabase.driver(
                    settings.neo4j_uri,
                    auth=(settings.neo4j_username, settings.neo4j_password),
                    connection_timeout=60,
                    max_transaction_retry_time=60,
                    keep_alive=True,
                )
            return cls._driver

    @classmethod
    async def close_driver(cls) -> None:
        """Close the Neo4j driver, if open."""
        with cls._lock:
            driver, cls._driver = cls._driver, None
        if driver is not None:
            await driver.close()


def get_neo4j_driver(settings: Settings | None = None) -> AsyncDriver:
    """Convenience getter for services."""

    return Neo4jConnection.get_driver(settings)
