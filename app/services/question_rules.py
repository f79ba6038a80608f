"""
Type-driven questionnaire rules, kept free of any session or request state.

• on_question_type_changed(): which option list a question ends up with after
  its type is set (create) or changed (edit).
• render_answer(): how a stored answer value reads for its question type, with
  a warning instead of a guess when the value does not fit.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence, Tuple

from app.models.question import (
    QUESTION_TYPES,
    TYPE_BOOLEAN,
    TYPE_EMOJI_RATING,
    TYPE_MULTIPLE_CHOICE,
    TYPE_TEXT,
)
from app.services.errors import ValidationError

DEFAULT_RATING_OPTIONS: Tuple[Tuple[str, int], ...] = (
    ("Muito Ruim", 1),
    ("Ruim", 2),
    ("Regular", 3),
    ("Bom", 4),
    ("Excelente", 5),
)
DEFAULT_BOOLEAN_OPTIONS: Tuple[Tuple[str, int], ...] = (
    ("Sim", 1),
    ("Não", 0),
)

# Types whose form refuses to submit without options
OPTION_REQUIRED_TYPES = (TYPE_MULTIPLE_CHOICE, TYPE_EMOJI_RATING)

RATING_MIN, RATING_MAX = 1, 5

QUESTION_TYPE_LABELS = {
    TYPE_MULTIPLE_CHOICE: "Múltipla Escolha",
    TYPE_EMOJI_RATING: "Avaliação (1-5)",
    TYPE_TEXT: "Texto Livre",
    TYPE_BOOLEAN: "Sim/Não",
}

_TRUE_WORDS = {"true", "1", "sim", "s", "yes", "y"}
_FALSE_WORDS = {"false", "0", "não", "nao", "n", "no"}

PATCH_KEEP = "keep"
PATCH_REPLACE = "replace"
PATCH_CLEAR = "clear"


def normalize_question_type(value: Any) -> str:
    qt = (str(value) if value is not None else "").strip().lower()
    if qt not in QUESTION_TYPES:
        raise ValidationError(
            {"question_type": f"Invalid question type {value!r}; expected one of {', '.join(QUESTION_TYPES)}."}
        )
    return qt


def _as_option_dicts(pairs: Sequence[Tuple[str, int]]) -> List[Dict[str, Any]]:
    return [
        {"option_text": label, "option_value": value, "order_index": idx}
        for idx, (label, value) in enumerate(pairs, start=1)
    ]


def default_options_for(question_type: str) -> List[Dict[str, Any]]:
    if question_type == TYPE_EMOJI_RATING:
        return _as_option_dicts(DEFAULT_RATING_OPTIONS)
    if question_type == TYPE_BOOLEAN:
        return _as_option_dicts(DEFAULT_BOOLEAN_OPTIONS)
    return []


@dataclass(frozen=True)
class OptionsPatch:
    action: str
    options: Tuple[Dict[str, Any], ...] = field(default_factory=tuple)

    @property
    def changes_options(self) -> bool:
        return self.action != PATCH_KEEP

    def apply(self, current: Sequence[Any]) -> List[Any]:
        if self.action == PATCH_CLEAR:
            return []
        if self.action == PATCH_REPLACE:
            return [dict(o) for o in self.options]
        return list(current)


def on_question_type_changed(current_options: Sequence[Any], new_type: str) -> OptionsPatch:
    """
    text                      -> clear, always
    emoji_rating/boolean      -> system defaults, only when there are no options yet
    anything else             -> keep (multiple_choice options are user-managed)
    """
    new_type = normalize_question_type(new_type)
    if new_type == TYPE_TEXT:
        return OptionsPatch(PATCH_CLEAR)
    if new_type in (TYPE_EMOJI_RATING, TYPE_BOOLEAN) and not current_options:
        return OptionsPatch(PATCH_REPLACE, tuple(default_options_for(new_type)))
    return OptionsPatch(PATCH_KEEP)


def validate_question_fields(
    *,
    category_id: Any,
    question_text: Optional[str],
    question_type: str,
    order_index: Any,
    option_count: int,
) -> Dict[str, str]:
    """Submit-time checks; returns a field -> message map (empty when valid)."""
    errors: Dict[str, str] = {}
    if not category_id:
        errors["category_id"] = "Categoria é obrigatória."
    if not (question_text or "").strip():
        errors["question_text"] = "Texto da pergunta é obrigatório."
    try:
        if int(order_index) < 1:
            raise ValueError()
    except (TypeError, ValueError):
        errors["order_index"] = "Ordem deve ser maior que 0."
    if question_type in OPTION_REQUIRED_TYPES and option_count == 0:
        errors["options"] = "Adicione pelo menos uma opção (add at least one option)."
    return errors


@dataclass(frozen=True)
class AnswerDisplay:
    kind: str
    value: Any
    display: Optional[str]
    warning: Optional[str] = None

    def to_dict(self) -> dict:
        return {"kind": self.kind, "value": self.value, "display": self.display, "warning": self.warning}


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        n = float(value)
    elif isinstance(value, str):
        try:
            n = float(Decimal(value.strip()))
        except (InvalidOperation, ValueError):
            return None
    else:
        return None
    return n if math.isfinite(n) else None


def _to_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    return None


def render_answer(question_type: str, value: Any) -> AnswerDisplay:
    """Map a stored answer to its display form; misfits get a warning and no display."""
    if value is None:
        return AnswerDisplay(question_type, None, None, "Sem resposta.")

    if question_type == TYPE_EMOJI_RATING:
        n = _to_number(value)
        if n is None:
            return AnswerDisplay("rating", value, None, f"Avaliação não numérica: {value!r}.")
        if not (RATING_MIN <= n <= RATING_MAX):
            return AnswerDisplay("rating", value, None, f"Avaliação fora da escala 1-5: {n:g}.")
        rating = int(n) if n.is_integer() else n
        return AnswerDisplay("rating", rating, f"{rating:g}/{RATING_MAX}")

    if question_type == TYPE_BOOLEAN:
        b = _to_bool(value)
        if b is None:
            return AnswerDisplay("boolean", value, None, f"Resposta sim/não inválida: {value!r}.")
        return AnswerDisplay("boolean", b, "Sim" if b else "Não")

    if question_type == TYPE_MULTIPLE_CHOICE:
        if isinstance(value, str) and value.strip():
            return AnswerDisplay("choice", value, value)
        if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
            return AnswerDisplay("choice", value, f"{value}")
        return AnswerDisplay("choice", value, None, f"Opção inválida: {value!r}.")

    if question_type == TYPE_TEXT:
        if isinstance(value, str):
            return AnswerDisplay("text", value, value)
        return AnswerDisplay("text", value, None, f"Resposta de texto não é uma string: {value!r}.")

    return AnswerDisplay("unknown", value, None, f"Tipo de pergunta desconhecido: {question_type!r}.")
