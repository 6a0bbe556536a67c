from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from querycharts.db.models import EngineKind


@dataclass(frozen=True)
class SqlDialect:
    """Identifier quoting for the supported engines.

    Introspection only ever needs to quote table/schema names, so this stays small.
    """

    ident_quote: str  # either '"' or '`'

    def ident(self, name: str) -> str:
        q = self.ident_quote
        return q + name.replace(q, q + q) + q

    def qualified(self, name: str) -> str:
        """Quote each dot-separated part of ``schema.table``."""
        return ".".join(self.ident(p) for p in split_qualified(name))


def split_qualified(name: str) -> List[str]:
    """Split ``schema.table`` on dots outside double quotes or backticks."""
    text = (name or "").strip()
    parts: List[str] = []
    buf = ""
    quote: Optional[str] = None
    i = 0
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == quote:
                # doubled quote inside a quoted identifier is a literal quote
                if text[i + 1:i + 2] == quote:
                    buf += ch
                    i += 2
                    continue
                quote = None
            else:
                buf += ch
        elif ch in ('"', "`"):
            quote = ch
        elif ch == ".":
            parts.append(buf)
            buf = ""
        else:
            buf += ch
        i += 1
    parts.append(buf)
    return parts


def schema_and_table(name: str) -> Tuple[Optional[str], str]:
    parts = split_qualified(name)
    if len(parts) == 1:
        return None, parts[0]
    return ".".join(parts[:-1]), parts[-1]


def dialect_for(kind: EngineKind) -> SqlDialect:
    if EngineKind.parse(kind) is EngineKind.MYSQL:
        return SqlDialect(ident_quote="`")
    return SqlDialect(ident_quote='"')
