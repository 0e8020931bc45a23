"""Classification-rule matching over comprovante text.

Everything here is pure: callers pass the rules and beneficiaries already
loaded from the store, in the order they want them tried.
"""

import enum
import re
import unicodedata
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Union

from .exceptions import ValidationError

RECEIVER_MIN_LENGTH = 3

PARA_LINE_RE = re.compile(r"^para\b[\s:]*", re.IGNORECASE)
RECEIVER_BLOCK_RE = re.compile(r"dados do recebedor[\s\S]*?para\s+(.+?)(?:\n|$)", re.IGNORECASE)


def _strip_marks(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize(*parts: Optional[str]) -> str:
    joined = " ".join(part or "" for part in parts)
    return _strip_marks(joined.lower())


class RuleOrder(enum.Enum):
    NEWEST_FIRST = "newest_first"
    OLDEST_FIRST = "oldest_first"

    @property
    def ordering(self) -> tuple[str, ...]:
        if self is RuleOrder.OLDEST_FIRST:
            return ("created_at", "id")
        return ("-created_at", "-id")


@dataclass(frozen=True)
class OwnerScope:
    user_id: int


@dataclass(frozen=True)
class AllUsersScope:
    pass


RuleScope = Union[OwnerScope, AllUsersScope]

ALL_USERS_TOKEN = "__all__"


def parse_rule_scope(raw: Optional[object], *, default_user_id: int, allow_all: bool) -> RuleScope:
    value = "" if raw is None else str(raw).strip()
    if not value:
        return OwnerScope(default_user_id)
    if value.lower() == ALL_USERS_TOKEN:
        return AllUsersScope() if allow_all else OwnerScope(default_user_id)
    if not value.isdigit():
        raise ValidationError("Usuário inválido.", field="user")
    user_id = int(value)
    if not allow_all and user_id != default_user_id:
        return OwnerScope(default_user_id)
    return OwnerScope(user_id)


def require_single_owner(scope: RuleScope) -> int:
    """Owner id a new rule is created under; all-users scope is refused."""
    if isinstance(scope, AllUsersScope):
        raise ValidationError("Selecione um usuário específico para criar a regra.", field="user")
    return scope.user_id


@dataclass(frozen=True)
class Suggestion:
    category_id: Optional[object]
    beneficiary_id: Optional[object]
    reason: str

    def to_payload(self) -> dict:
        return {
            "categoria_id": _as_str(self.category_id),
            "beneficiario_id": _as_str(self.beneficiary_id),
            "motivo": self.reason,
        }


def _as_str(value):
    return str(value) if value is not None else None


def match_rule(corpus: str, rules: Iterable) -> Optional[Suggestion]:
    """Return the suggestion of the first rule whose term occurs in ``corpus``.

    Rules are tried in the order given; there is no scoring, so a broad term
    placed earlier shadows a more specific one placed later. Blank terms never
    match.
    """
    if not corpus:
        return None
    for rule in rules:
        raw_term = getattr(rule, "term", "") or ""
        term = normalize(raw_term).strip()
        if not term:
            continue
        if term in corpus:
            return Suggestion(
                category_id=getattr(rule, "category_id", None),
                beneficiary_id=getattr(rule, "beneficiary_id", None),
                reason=f"Termo encontrado: {raw_term}",
            )
    return None


def match_beneficiary(corpus: str, beneficiaries: Sequence):
    """Return the beneficiary with the longest name found in ``corpus``.

    Ties keep the first one seen, so callers control precedence through the
    input order.
    """
    if not corpus:
        return None
    best = None
    best_len = 0
    for beneficiary in beneficiaries:
        name = normalize(getattr(beneficiary, "name", "") or "").strip()
        if not name or name not in corpus:
            continue
        if len(name) > best_len:
            best = beneficiary
            best_len = len(name)
    return best


def extract_receiver_name(raw_text: str) -> Optional[str]:
    if not raw_text:
        return None
    plain = str(raw_text)
    for line in plain.replace("\r", "").split("\n"):
        stripped = line.strip()
        if not PARA_LINE_RE.match(stripped):
            continue
        name = PARA_LINE_RE.sub("", stripped, count=1).strip()
        if len(name) >= RECEIVER_MIN_LENGTH:
            return name

    match = RECEIVER_BLOCK_RE.search(plain)
    if match:
        name = match.group(1).strip()
        if len(name) >= RECEIVER_MIN_LENGTH:
            return name
    return None
