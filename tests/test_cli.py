"""Tests for the mtt-graph command line."""

import json
import logging
import textwrap

import pytest

from mtt_graph.cli import format_program, main
from mtt_graph.compiler import GHGDSLToMTTCompiler

RULES = textwrap.dedent("""\
    transformation_steps:
      - name: transform_activities_to_emissions
        substeps:
          - name: transform_energy_to_emission
            mapping:
              - target: "@type"
                value: Emission
              - target: site
                source: $.activity.site
""")

GHG_RULES = textwrap.dedent("""\
    emission_factors:
      electricity: {factor: 0.5}
    transformations:
      - name: aggregate_emissions
""")

GRAPH = {
    "nodes": [
        {"id": "f1", "type": "Facility", "properties": {"name": "Plant A"}},
        {"id": "a1", "type": "ManufacturingActivity", "properties": {"site": "north"}},
        {"id": "e1", "type": "EnergyConsumption", "properties": {"energy_type": "electricity", "amount": 10}},
    ],
    "edges": [
        {"label": "hasActivity", "sourceId": "f1", "targetId": "a1"},
        {"label": "consumes", "sourceId": "a1", "targetId": "e1"},
    ],
}


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logging.getLogger("mtt_graph").handlers.clear()
    logging.getLogger("mtt_graph").setLevel(logging.NOTSET)


@pytest.fixture
def files(tmp_path):
    rules = tmp_path / "rules.yaml"
    rules.write_text(RULES)
    ghg = tmp_path / "ghg.yaml"
    ghg.write_text(GHG_RULES)
    graph = tmp_path / "graph.json"
    graph.write_text(json.dumps(GRAPH))
    return {"rules": str(rules), "ghg": str(ghg), "graph": str(graph), "dir": tmp_path}


class TestCompile:
    def test_generic(self, files, capsys):
        assert main(["compile", files["rules"]]) == 0
        out = capsys.readouterr().out
        assert "initial state: q0" in out
        assert "match_activity" in out
        assert "[guarded]" in out

    def test_ghg(self, files, capsys):
        assert main(["compile", files["ghg"], "--ghg"]) == 0
        out = capsys.readouterr().out
        assert "emit_electricity" in out
        assert "entry point: aggregate_emissions -> aggregate" in out

    def test_format_program(self):
        program = GHGDSLToMTTCompiler().compile({"emission_factors": {"coal": 2.42}})
        lines = format_program(program).splitlines()
        assert lines[0] == "initial state: q0"
        assert any("emit_coal(energy)" in line for line in lines)


class TestEncode:
    def test_star(self, files, capsys):
        assert main(["encode", files["graph"]]) == 0
        tree = json.loads(capsys.readouterr().out)
        assert tree["kind"] == "graph"
        assert [c["name"] for c in tree["children"]] == ["f1", "a1", "e1"]

    def test_canonical_root(self, files, capsys):
        assert main(["encode", files["graph"], "--policy", "canonical-root", "--root", "a1"]) == 0
        tree = json.loads(capsys.readouterr().out)
        assert tree["name"] == "a1"
        assert tree["children"][0]["kind"] == "edge"

    def test_policy_from_config(self, files, capsys):
        config = files["dir"] / "mtt.yaml"
        config.write_text("policy: nested\n")
        assert main(["--config", str(config), "encode", files["graph"]]) == 0
        tree = json.loads(capsys.readouterr().out)
        assert {c["kind"] for c in tree["children"]} == {"type_group"}


class TestTransform:
    def test_generic(self, files, capsys):
        assert main(["transform", files["rules"], files["graph"]]) == 0
        result = json.loads(capsys.readouterr().out)
        facility, matched = result["children"][0], result["children"][1]["children"][0]
        assert facility["kind"] == "Facility"
        assert matched["kind"] == "matched"
        emission = matched["children"][0]
        assert emission["name"] == "emission_a1"
        assert emission["attrs"] == [{"key": "site", "value": "north"}]

    def test_ghg(self, files, capsys):
        assert main(["transform", files["ghg"], files["graph"], "--ghg"]) == 0
        result = json.loads(capsys.readouterr().out)
        last = result["children"][1]["children"][1]["children"][0]
        assert last["kind"] == "Emission"
        attrs = {a["key"]: a["value"] for a in last["attrs"]}
        assert attrs["co2_amount"] == 5.0

    def test_depth_limit_from_config(self, files, capsys):
        config = files["dir"] / "mtt.yaml"
        config.write_text("max_depth: 1\n")
        assert main(["--config", str(config), "transform", files["rules"], files["graph"]]) == 1
        assert "depth" in capsys.readouterr().err


class TestErrors:
    def test_missing_file(self, files, capsys):
        assert main(["encode", str(files["dir"] / "nope.json")]) == 1
        assert "not found" in capsys.readouterr().err

    def test_bad_rules(self, files, capsys):
        bad = files["dir"] / "bad.yaml"
        bad.write_text("- not\n- a mapping\n")
        assert main(["compile", str(bad)]) == 1
        assert "DSL" in capsys.readouterr().err

    def test_bad_config(self, files, capsys):
        config = files["dir"] / "mtt.yaml"
        config.write_text("colour: red\n")
        assert main(["--config", str(config), "encode", files["graph"]]) == 1
        assert "colour" in capsys.readouterr().err

    def test_malformed_steps(self, files, capsys):
        bad = files["dir"] / "bad_steps.yaml"
        bad.write_text("transformation_steps:\n  - just_a_string\n")
        assert main(["transform", str(bad), files["graph"]]) == 1
        assert "DSL: step must be a mapping" in capsys.readouterr().err

    def test_graph_node_without_id(self, files, capsys):
        graph = files["dir"] / "no_id.json"
        graph.write_text(json.dumps({"nodes": [{"type": "N"}]}))
        assert main(["encode", str(graph)]) == 1
        assert "missing 'id'" in capsys.readouterr().err

    def test_bad_json(self, files, capsys):
        graph = files["dir"] / "broken.json"
        graph.write_text("{nodes: ")
        assert main(["encode", str(graph)]) == 1

    def test_no_command(self, capsys):
        assert main([]) == 1
