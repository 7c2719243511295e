import json
import random

import pytest

from compiler import compile_source
from diagnostics import DocumentError
from fragments import Fragment
from graph_state import (
    SCHEMA_VERSION, SEED_LIMIT, Color, ExpressionEntry, FolderEntry, GraphState,
    TextEntry, dumps, entry_from_dict, loads, to_graph_state,
)


def test_document_layout():
    doc = to_graph_state(compile_source('x = 3; fold "Main" { y = x; }'))
    assert doc["version"] == SCHEMA_VERSION == 11
    assert doc["graph"]["viewport"] == {"xmin": -10.0, "ymin": -10.0, "xmax": 10.0, "ymax": 10.0}
    assert doc["graph"]["showGrid"] is True
    assert doc["graph"]["polarNumbers"] is False
    assert doc["expressions"]["list"] == [
        {"type": "expression", "id": "1", "latex": "x=3", "color": None, "folderId": None},
        {"type": "folder", "id": "2", "title": "Main"},
        {"type": "expression", "id": "3", "latex": "y=x", "color": None, "folderId": "2"},
    ]


def test_random_seed_is_a_decimal_string():
    for seed in range(5):
        doc = to_graph_state([], rng=random.Random(seed))
        value = doc["randomSeed"]
        assert isinstance(value, str)
        assert value.isdigit()
        assert 0 <= int(value) < SEED_LIMIT


def test_seed_follows_the_rng():
    a = to_graph_state([], rng=random.Random(42))
    b = to_graph_state([], rng=random.Random(42))
    assert a["randomSeed"] == b["randomSeed"]


def test_empty_folder_title_is_null():
    state = GraphState.from_fragments([Fragment("\\folder ", "1")])
    assert state.expressions[0].title is None
    assert state.to_dict()["expressions"]["list"][0]["title"] is None


def test_document_is_plain_json():
    doc = to_graph_state(compile_source("a = 1;"))
    assert json.loads(json.dumps(doc)) == doc


def test_unknown_keys_survive_a_round_trip():
    text = json.dumps({
        "version": 11,
        "randomSeed": "12345",
        "graph": {
            "viewport": {"xmin": -5.0, "ymin": -5.0, "xmax": 5.0, "ymax": 5.0},
            "showGrid": False,
            "showXAxis": True,
            "showYAxis": True,
            "xAxisNumbers": True,
            "yAxisNumbers": True,
            "polarNumbers": False,
        },
        "expressions": {"list": [
            {"type": "folder", "id": "1", "title": "A", "collapsed": True},
            {"type": "expression", "id": "2", "latex": "y=x", "color": "#2d70b3",
             "folderId": "1", "lineStyle": "DASHED"},
            {"type": "text", "id": "3", "text": "notes"},
        ]},
    })

    state = loads(text)
    assert isinstance(state.expressions[0], FolderEntry)
    assert state.expressions[0].extra == {"collapsed": True}
    assert state.expressions[1].color == Color(0x2D70B3)
    assert isinstance(state.expressions[2], TextEntry)
    assert state.graph.show_grid is False
    assert state.graph.viewport.xmax == 5.0

    assert json.loads(dumps(state)) == json.loads(text)


def test_entry_order_is_kept():
    entries = [ExpressionEntry(str(i), latex=f"a_{{{i}}}={i}") for i in range(1, 6)]
    state = loads(dumps(GraphState(entries, "7")))
    assert [e.id for e in state.expressions] == ["1", "2", "3", "4", "5"]


def test_color():
    assert Color.parse("#ff0000").value == 0xFF0000
    assert Color(0x00000A).to_json() == "#00000a"

    with pytest.raises(DocumentError, match="not \"#\""):
        Color.parse("ff0000")
    with pytest.raises(DocumentError, match="hex"):
        Color.parse("#zz0000")


def test_unknown_entry_type():
    with pytest.raises(DocumentError, match="table"):
        entry_from_dict({"type": "table", "id": "1"})


def test_malformed_document():
    with pytest.raises(DocumentError):
        loads('{"version": 11}')
    with pytest.raises(DocumentError):
        loads("not json")
