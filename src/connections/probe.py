"""Live database connectivity probes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

import psycopg2
import pymysql

logger = logging.getLogger(__name__)

MYSQL_DRIVERS = {"mysql", "mariadb"}
POSTGRES_DRIVERS = {"pgsql", "postgres", "postgresql"}


@dataclass
class ProbeResult:
    reachable: bool
    error: Optional[str] = None


def _connect_mysql(config: Mapping[str, Any], timeout: int):
    return pymysql.connect(
        host=config["host"],
        port=int(config["port"]),
        database=config["database"],
        user=config["username"],
        password=config["password"],
        connect_timeout=timeout,
        read_timeout=timeout,
        write_timeout=timeout,
    )


def _connect_postgres(config: Mapping[str, Any], timeout: int):
    return psycopg2.connect(
        host=config["host"],
        port=int(config["port"]),
        dbname=config["database"],
        user=config["username"],
        password=config["password"],
        connect_timeout=timeout,
        options=f"-c statement_timeout={timeout * 1000}",
    )


class DatabaseProbe:
    """Open a connection, run SELECT 1, always close."""

    DEFAULT_TIMEOUT = 5
    DEFAULT_DRIVER = "mysql"

    def __init__(self, timeout: int = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout
        self._connectors: Dict[str, Callable[[Mapping[str, Any], int], Any]] = {}
        for name in MYSQL_DRIVERS:
            self._connectors[name] = _connect_mysql
        for name in POSTGRES_DRIVERS:
            self._connectors[name] = _connect_postgres

    def probe(self, config: Mapping[str, Any]) -> ProbeResult:
        driver = str(config.get("driver") or self.DEFAULT_DRIVER).lower()
        connect = self._connectors.get(driver)
        if connect is None:
            return ProbeResult(False, f"unsupported driver: {driver}")

        conn = None
        try:
            conn = connect(config, self.timeout)
            with conn.cursor() as cursor:
                cursor.execute("SELECT 1")
                cursor.fetchone()
            return ProbeResult(True)
        except Exception as exc:  # noqa: BLE001
            return ProbeResult(False, str(exc))
        finally:
            if conn is not None:
                try:
                    conn.close()
                except Exception as exc:  # noqa: BLE001
                    logger.debug("Probe connection close failed: %s", exc)

    def check(self, config: Mapping[str, Any]) -> bool:
        result = self.probe(config)
        if not result.reachable:
            logger.warning(
                "Database %s:%s unreachable: %s",
                config.get("host"), config.get("port"), result.error,
            )
        return result.reachable
