from __future__ import annotations

import json

import pytest

from bellhopping.luxury import LUXURY_PROGRAM_INFO, LuxuryProgram, LuxuryRegistry, get_luxury_programs, is_luxury_hotel


def test_chain_code_maps_to_program_for_any_hotel():
    assert LuxuryProgram.FOUR_SEASONS_PREFERRED in get_luxury_programs("FS", "999999")
    assert is_luxury_hotel("FS", None)


def test_virtuoso_hotel_id_without_chain():
    assert get_luxury_programs(None, "02179") == [LuxuryProgram.VIRTUOSO]


def test_chain_and_virtuoso_membership_are_unioned():
    programs = get_luxury_programs("FS", "02179")

    assert programs == [LuxuryProgram.FOUR_SEASONS_PREFERRED, LuxuryProgram.VIRTUOSO]
    assert len(programs) == 2


def test_virtuoso_is_never_listed_twice():
    registry = LuxuryRegistry({"VX": LuxuryProgram.VIRTUOSO}, {"H1"})

    assert registry.get_luxury_programs("VX", "H1") == [LuxuryProgram.VIRTUOSO]


def test_unknown_hotel_is_not_luxury():
    assert get_luxury_programs("ZZ", "000000") == []
    assert not is_luxury_hotel(None, None)


def test_maintenance_operations_report_changes():
    registry = LuxuryRegistry()

    assert registry.add_chain("RW", LuxuryProgram.ROSEWOOD_ELITE)
    assert not registry.add_chain("RW", LuxuryProgram.VIRTUOSO)
    assert registry.add_virtuoso_hotel("H1")
    assert not registry.add_virtuoso_hotel("H1")
    assert registry.remove_virtuoso_hotel("H1")
    assert not registry.remove_virtuoso_hotel("H1")
    assert registry.get_luxury_programs("RW", "H1") == [LuxuryProgram.ROSEWOOD_ELITE]


def test_registry_persists_to_json(tmp_path):
    registry = LuxuryRegistry({"PE": LuxuryProgram.PENINSULA_PRIVILEGE}, {"B2", "A1"})
    path = registry.save(tmp_path / "luxury" / "registry.json")

    data = json.loads(path.read_text())
    assert data == {"chain_programs": {"PE": "PENINSULA_PRIVILEGE"}, "virtuoso_hotel_ids": ["A1", "B2"]}

    loaded = LuxuryRegistry.load(path)
    assert loaded.chain_programs == {"PE": LuxuryProgram.PENINSULA_PRIVILEGE}
    assert loaded.virtuoso_hotel_ids == frozenset({"A1", "B2"})


def test_from_settings_falls_back_to_builtin_data(tmp_path):
    registry = LuxuryRegistry.from_settings(tmp_path / "missing.json")

    assert registry.chain_programs == LuxuryRegistry.default().chain_programs
    with pytest.raises(FileNotFoundError):
        LuxuryRegistry.load(tmp_path / "missing.json")


def test_every_program_has_display_metadata():
    assert set(LUXURY_PROGRAM_INFO) == set(LuxuryProgram)
    assert LUXURY_PROGRAM_INFO[LuxuryProgram.VIRTUOSO].display_name == "Virtuoso"
