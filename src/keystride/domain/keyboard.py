"""
Static keyboard and curriculum data.

Partner keys and hand groups are plain lookup tables. Modules and the word
bank ship as ``data/curriculum.yaml`` and are parsed once on first use.
"""

from functools import lru_cache
from importlib import resources
from typing import Any

import yaml

from .errors import UnknownModuleError
from .models import Module

# Mirror-image finger on the other hand; used for alternating drills.
PARTNER_KEYS = {
    "f": "j", "j": "f", "d": "k", "k": "d", "s": "l", "l": "s",
    "a": ";", ";": "a", "g": "h", "h": "g", "e": "i", "i": "e",
    "r": "u", "u": "r", "t": "y", "y": "t", "w": "o", "o": "w",
    "q": "p", "p": "q", "v": "m", "m": "v", "c": ",", ",": "c",
    "x": ".", ".": "x", "z": "/", "/": "z", "b": "n", "n": "b",
}  # fmt: skip

LEFT_HAND_KEYS = frozenset("asdfgqwertzxcvb")
RIGHT_HAND_KEYS = frozenset("hjkl;yuiopnm,./")


def partner_key(key: str) -> str | None:
    return PARTNER_KEYS.get(key)


@lru_cache(maxsize=1)
def _curriculum() -> dict[str, Any]:
    text = (
        resources.files("keystride.domain")
        .joinpath("data/curriculum.yaml")
        .read_text(encoding="utf-8")
    )
    return yaml.safe_load(text) or {}


@lru_cache(maxsize=1)
def load_modules() -> tuple[Module, ...]:
    """Return the curriculum modules in teaching order."""
    return tuple(
        Module(
            id=str(raw["id"]),
            name=str(raw["name"]),
            description=str(raw.get("description", "")),
            keys=tuple(str(k) for k in raw["keys"]),
            target_wpm=int(raw["target_wpm"]),
            target_accuracy=int(raw["target_accuracy"]),
        )
        for raw in _curriculum().get("modules", [])
    )


@lru_cache(maxsize=1)
def load_word_bank() -> dict[str, tuple[str, ...]]:
    """Return the word bank grouped by the keys each group needs."""
    return {
        str(group): tuple(str(w) for w in words)
        for group, words in (_curriculum().get("word_bank") or {}).items()
    }


def all_words() -> list[str]:
    """Flatten the word bank, keeping group order and duplicates."""
    return [w for words in load_word_bank().values() for w in words]


def module_index(module_id: str) -> int:
    for i, module in enumerate(load_modules()):
        if module.id == module_id:
            return i
    raise UnknownModuleError(module_id)


def get_module(module_id: str) -> Module:
    return load_modules()[module_index(module_id)]


def next_module(module_id: str) -> Module | None:
    """Return the module after ``module_id``, or None for the last one."""
    modules = load_modules()
    i = module_index(module_id) + 1
    return modules[i] if i < len(modules) else None
