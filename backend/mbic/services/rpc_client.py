"""
Stored-procedure client.

Organization-wide metrics are computed by set-returning Postgres functions;
this client calls them by name with named arguments and hands back plain
dicts. Errors from the database are logged and re-raised unchanged.
"""
import json
import logging
import re
from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _check_identifier(name: str, kind: str) -> str:
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid {kind} name: {name!r}")
    return name


class RpcClient:
    """Calls database functions through a shared engine, one connection per call."""

    def __init__(self, engine: Engine):
        self.engine = engine

    @staticmethod
    def build_statement(fn: str, params: Mapping[str, Any]) -> str:
        _check_identifier(fn, "function")
        args = ", ".join(
            f"{_check_identifier(key, 'parameter')} => :{key}" for key in params
        )
        return f"SELECT * FROM {fn}({args})"

    def call(self, fn: str, params: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        params = dict(params or {})
        statement = text(self.build_statement(fn, params))
        try:
            with self.engine.connect() as conn:
                result = conn.execute(statement, params)
                rows = [dict(row) for row in result.mappings().all()]
        except Exception as exc:
            self._log_call(fn, params, exc)
            raise
        self._log_call(fn, params, None)
        return rows

    @staticmethod
    def _log_call(fn: str, params: Mapping[str, Any], error: Optional[BaseException]) -> None:
        line = json.dumps(
            {"at": "rpc", "fn": fn, "params": params, "ok": error is None, "error": str(error) if error else None},
            default=str,
        )
        if error is None:
            logger.debug(line)
        else:
            logger.error(line)


@lru_cache()
def get_rpc_client() -> RpcClient:
    """Process-wide client, built on first use"""
    from mbic.database import engine
    return RpcClient(engine)
