from pathlib import Path

import pytest

from conftest import catalogue_frame
from requirements_tools.coverage import (
    SuiteTarget,
    build_coverage_table,
    coverage_cell,
    coverage_headers,
    format_requirements_table,
    load_catalogue,
    load_out_of_scope,
    suite_targets,
    uncovered_requirements,
    unmatched_requirements,
)
from requirements_tools.errors import ConfigError, MissingInputError
from requirements_tools.runnables import (
    Association,
    assemble_suite,
    collect_requirement_associations,
    define_group,
    define_suite,
    define_test,
)
from requirements_tools.schema import BOM

SERVER = SuiteTarget(suite_id="suite", title="Server Suite", actor="Server")


def _server_suite(*tests):
    return assemble_suite(define_suite("suite", "Server Suite", define_group("group", "Group", *tests)))


def _coverage_row(table, requirement_id):
    rows = [row for row in table.iter_rows(named=True) if row["ID"] == requirement_id]
    assert len(rows) == 1
    return rows[0]


def test_claimed_requirement_lists_short_and_full_ids():
    catalogue = catalogue_frame([{"Req Set": "s1", "ID": "r1", "Actor": "Server"}])
    suite_node = _server_suite(define_test("t", verifies="s1@r1", short_id="1.01", full_id="suite.group.1.01"))
    requirements_map = collect_requirement_associations([suite_node])

    table = build_coverage_table(catalogue, [SERVER], requirements_map, {})

    row = _coverage_row(table, "r1")
    assert row["Server Suite Short ID(s)"] == "1.01"
    assert row["Server Suite Full ID(s)"] == "suite.group.1.01"


def test_out_of_scope_requirement_is_not_tested():
    catalogue = catalogue_frame([{"Req Set": "s1", "ID": "r1", "Actor": "Server"}])
    requirements_map = collect_requirement_associations([_server_suite(define_test("t"))])
    out_of_scope = {"s1@r1": {"Req Set": "s1", "ID": "r1", "Reason": "Not Tested", "Details": ""}}

    table = build_coverage_table(catalogue, [SERVER], requirements_map, out_of_scope)

    row = _coverage_row(table, "r1")
    assert row["Server Suite Short ID(s)"] == "Not Tested"
    assert row["Server Suite Full ID(s)"] == "Not Tested"


def test_uncovered_in_scope_requirement_is_blank():
    catalogue = catalogue_frame([{"Req Set": "s1", "ID": "r1", "Actor": "Server"}])

    table = build_coverage_table(catalogue, [SERVER], {}, {})

    row = _coverage_row(table, "r1")
    assert row["Server Suite Short ID(s)"] == ""
    assert row["Server Suite Full ID(s)"] == ""
    assert uncovered_requirements(table, [SERVER]) == ["s1@r1"]


def test_uncovered_marker_is_configurable():
    assert coverage_cell("Server", "s1@r1", SERVER, {}, {}, "UNCOVERED") == ("UNCOVERED", "UNCOVERED")


def test_actor_mismatch_is_na_even_when_claimed():
    catalogue = catalogue_frame([{"Req Set": "s1", "ID": "r1", "Actor": "Client"}])
    requirements_map = {"s1@r1": [Association("1.01", "suite-group-t", "suite")]}

    table = build_coverage_table(catalogue, [SERVER], requirements_map, {"s1@r1": {}})

    row = _coverage_row(table, "r1")
    assert row["Server Suite Short ID(s)"] == "NA"
    assert row["Server Suite Full ID(s)"] == "NA"


def test_actor_match_is_substring():
    requirements_map = {"s1@r1": [Association("1.01", "suite-group-t", "suite")]}

    assert coverage_cell("Client, Server", "s1@r1", SERVER, requirements_map, {}) == ("1.01", "suite-group-t")


def test_only_associations_from_the_same_suite_count():
    client = SuiteTarget(suite_id="client_suite", title="Client Suite", actor="Client")
    requirements_map = {
        "s1@r1": [
            Association("1.01", "suite-g-a", "suite"),
            Association("2.03", "client_suite-g-b", "client_suite"),
            Association("3.01", "suite-g-c", "suite"),
        ]
    }
    catalogue = catalogue_frame([{"Req Set": "s1", "ID": "r1", "Actor": "Server, Client"}])

    table = build_coverage_table(catalogue, [SERVER, client], requirements_map, {})

    row = _coverage_row(table, "r1")
    assert row["Server Suite Short ID(s)"] == "1.01, 3.01"
    assert row["Server Suite Full ID(s)"] == "suite-g-a, suite-g-c"
    assert row["Client Suite Short ID(s)"] == "2.03"


def test_deprecated_rows_are_dropped_and_order_kept():
    catalogue = catalogue_frame(
        [
            {"Req Set": "s1", "ID": "r3", "Actor": "Server"},
            {"Req Set": "s1", "ID": "r1", "Actor": "Server", "Conformance": "DEPRECATED"},
            {"Req Set": "s1", "ID": "r2", "Actor": "Server", "Conformance": "SHALL"},
        ]
    )

    table = build_coverage_table(catalogue, [SERVER], {}, {})

    assert table["ID"].to_list() == ["r3", "r2"]
    assert table.columns == coverage_headers([SERVER])
    assert table.columns[-2:] == ["Server Suite Short ID(s)", "Server Suite Full ID(s)"]


def test_unmatched_requirements_ignore_catalogue_keys():
    catalogue = catalogue_frame(
        [
            {"Req Set": "s1", "ID": "r1"},
            {"Req Set": "s1", "ID": "old", "Conformance": "DEPRECATED"},
        ]
    )
    requirements_map = {
        "s1@missing": [Association("1.02", "suite-g-x", "suite")],
        "s1@r1": [Association("1.01", "suite-g-t", "suite")],
        "s1@old": [Association("1.03", "suite-g-y", "suite")],
    }

    assert unmatched_requirements(requirements_map, catalogue) == {
        "s1@missing": [Association("1.02", "suite-g-x", "suite")]
    }


def test_format_requirements_table_aligns_columns():
    table = format_requirements_table(
        {
            "s1@r9": [Association("1.01", "suite-g-t", "suite")],
            "a-much-longer-set@r10": [
                Association("2.1.03", "x", "suite"),
                Association("suite", "suite", "suite"),
            ],
        }
    )

    assert table.split("\n") == [
        "requirement_id        | short_id | full_id  ",
        "----------------------+----------+----------",
        "s1@r9                 | 1.01     | suite-g-t",
        "a-much-longer-set@r10 | 2.1.03   | x        ",
        "a-much-longer-set@r10 | suite    | suite    ",
        "",
    ]


def test_load_catalogue_reads_bom_csv_as_strings(tmp_path: Path):
    path = tmp_path / "kit_requirements.csv"
    path.write_bytes(
        (
            BOM
            + "Req Set,ID,URL,Requirement,Conformance,Actor,Sub-Requirement(s),Conditionality\n"
            + 's1,01,http://x,"Text, with comma",SHALL,NA,,\n'
        ).encode("utf-8")
    )

    catalogue = load_catalogue(path)

    row = next(catalogue.iter_rows(named=True))
    assert row["Req Set"] == "s1"
    assert row["ID"] == "01"
    assert row["Requirement"] == "Text, with comma"
    assert row["Actor"] == "NA"
    assert row["Conditionality"] == ""


def test_load_catalogue_missing_file(tmp_path: Path):
    with pytest.raises(MissingInputError):
        load_catalogue(tmp_path / "absent.csv")


def test_load_catalogue_requires_key_columns(tmp_path: Path):
    path = tmp_path / "bad.csv"
    path.write_text("Requirement,Actor\nText,Server\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Req Set"):
        load_catalogue(path)


def test_load_out_of_scope(tmp_path: Path):
    path = tmp_path / "oos.csv"
    path.write_bytes((BOM + "Req Set,ID,Reason,Details\ns1,r2,Not Verifiable,Subjective\n").encode("utf-8"))

    loaded = load_out_of_scope(path)

    assert list(loaded) == ["s1@r2"]
    assert loaded["s1@r2"]["Reason"] == "Not Verifiable"
    assert load_out_of_scope(tmp_path / "absent.csv") == {}


def test_suite_targets_validate_actor_and_titles():
    suite_a = _server_suite()
    suite_b = assemble_suite(define_suite("other", "Server Suite"))

    assert suite_targets([suite_a], {"suite": "Server"}) == [SERVER]
    with pytest.raises(ConfigError, match="actor"):
        suite_targets([suite_a], {})
    with pytest.raises(ConfigError, match="share the title"):
        suite_targets([suite_a, suite_b], {"suite": "Server", "other": "Server"})
