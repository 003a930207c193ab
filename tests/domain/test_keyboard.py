import pytest

from keystride.domain import keyboard
from keystride.domain.errors import UnknownModuleError


def test_curriculum_order():
    modules = keyboard.load_modules()
    assert len(modules) == 10
    assert modules[0].id == "home-index"
    assert modules[0].keys == ("f", "j")
    assert modules[-1].id == "full-keyboard"
    assert " " in modules[-1].keys


def test_each_module_extends_the_previous():
    modules = keyboard.load_modules()
    for prev, cur in zip(modules, modules[1:]):
        assert set(prev.keys) < set(cur.keys)
        assert cur.keys[: len(prev.keys)] == prev.keys


def test_module_lookup():
    assert keyboard.module_index("home-ring") == 2
    assert keyboard.get_module("top-center").target_wpm == 20
    assert keyboard.next_module("home-index").id == "home-middle"
    assert keyboard.next_module("full-keyboard") is None


def test_unknown_module():
    with pytest.raises(UnknownModuleError) as excinfo:
        keyboard.get_module("dvorak")
    assert isinstance(excinfo.value, KeyError)
    assert str(excinfo.value) == "Unknown module: 'dvorak'"


def test_partner_keys_are_symmetric():
    for key, partner in keyboard.PARTNER_KEYS.items():
        assert keyboard.partner_key(partner) == key
    assert keyboard.partner_key(" ") is None


def test_hands_do_not_overlap():
    assert not keyboard.LEFT_HAND_KEYS & keyboard.RIGHT_HAND_KEYS


def test_word_bank():
    bank = keyboard.load_word_bank()
    assert "common" in bank
    assert bank["fj"][0] == "fjfj"
    words = keyboard.all_words()
    assert words[0] == "fjfj"
    assert words.count("shall") == 2
