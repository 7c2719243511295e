import json
import random

from diagnostics import DocumentError


SCHEMA_VERSION = 11
SEED_LIMIT = 2 ** 64 - 1


class Color:
    def __init__(self, value):
        self.value = value  # 0xRRGGBB

    @classmethod
    def parse(cls, text):
        if not isinstance(text, str) or not text.startswith("#"):
            raise DocumentError(f'first character of color literal not "#": {text!r}')
        try:
            return cls(int(text[1:], 16))
        except ValueError:
            raise DocumentError(f"failed to parse hex literal: {text!r}") from None

    def to_json(self):
        return f"#{self.value:06x}"

    def __eq__(self, other):
        return isinstance(other, Color) and other.value == self.value

    def __repr__(self):
        return f"Color({self.to_json()})"


class Viewport:
    def __init__(self, xmin=-10.0, ymin=-10.0, xmax=10.0, ymax=10.0):
        self.xmin = xmin
        self.ymin = ymin
        self.xmax = xmax
        self.ymax = ymax

    def to_dict(self):
        return {"xmin": self.xmin, "ymin": self.ymin, "xmax": self.xmax, "ymax": self.ymax}

    @classmethod
    def from_dict(cls, d):
        return cls(d["xmin"], d["ymin"], d["xmax"], d["ymax"])


class GraphMeta:
    # json key -> attribute
    FLAGS = {
        "showGrid": "show_grid",
        "showXAxis": "show_x_axis",
        "showYAxis": "show_y_axis",
        "xAxisNumbers": "x_axis_numbers",
        "yAxisNumbers": "y_axis_numbers",
        "polarNumbers": "polar_numbers",
    }

    def __init__(self, viewport=None, show_grid=True, show_x_axis=True, show_y_axis=True,
                 x_axis_numbers=True, y_axis_numbers=True, polar_numbers=False):
        self.viewport = viewport or Viewport()
        self.show_grid = show_grid
        self.show_x_axis = show_x_axis
        self.show_y_axis = show_y_axis
        self.x_axis_numbers = x_axis_numbers
        self.y_axis_numbers = y_axis_numbers
        self.polar_numbers = polar_numbers

    def to_dict(self):
        d = {"viewport": self.viewport.to_dict()}
        for key, attr in self.FLAGS.items():
            d[key] = getattr(self, attr)
        return d

    @classmethod
    def from_dict(cls, d):
        kwargs = {attr: d[key] for key, attr in cls.FLAGS.items()}
        return cls(Viewport.from_dict(d["viewport"]), **kwargs)


class ExpressionEntry:
    type = "expression"

    def __init__(self, id, latex=None, color=None, folder_id=None, extra=None):
        self.id = id
        self.latex = latex
        self.color = color          # Color | None
        self.folder_id = folder_id
        self.extra = extra or {}    # keys we don't model, kept verbatim

    def to_dict(self):
        d = {
            "type": self.type,
            "id": self.id,
            "latex": self.latex,
            "color": self.color.to_json() if self.color is not None else None,
            "folderId": self.folder_id,
        }
        d.update(self.extra)
        return d

    @classmethod
    def from_dict(cls, d):
        extra = {k: v for k, v in d.items() if k not in ("type", "id", "latex", "color", "folderId")}
        color = d.get("color")
        return cls(
            d["id"],
            latex=d.get("latex"),
            color=Color.parse(color) if color is not None else None,
            folder_id=d.get("folderId"),
            extra=extra,
        )


class FolderEntry:
    type = "folder"

    def __init__(self, id, title=None, extra=None):
        self.id = id
        self.title = title
        self.extra = extra or {}

    def to_dict(self):
        d = {"type": self.type, "id": self.id, "title": self.title}
        d.update(self.extra)
        return d

    @classmethod
    def from_dict(cls, d):
        extra = {k: v for k, v in d.items() if k not in ("type", "id", "title")}
        return cls(d["id"], title=d.get("title"), extra=extra)


class TextEntry:
    type = "text"

    def __init__(self, id, text="", extra=None):
        self.id = id
        self.text = text
        self.extra = extra or {}

    def to_dict(self):
        d = {"type": self.type, "id": self.id, "text": self.text}
        d.update(self.extra)
        return d

    @classmethod
    def from_dict(cls, d):
        extra = {k: v for k, v in d.items() if k not in ("type", "id", "text")}
        return cls(d["id"], text=d.get("text", ""), extra=extra)


ENTRY_TYPES = {cls.type: cls for cls in (ExpressionEntry, FolderEntry, TextEntry)}


def entry_from_fragment(frag):
    if frag.is_folder:
        return FolderEntry(frag.id, title=frag.folder_title or None)
    return ExpressionEntry(frag.id, latex=frag.content, folder_id=frag.folder_id)


def entry_from_dict(d):
    try:
        entry_cls = ENTRY_TYPES[d["type"]]
    except KeyError:
        raise DocumentError(f"unknown expression entry type: {d.get('type')!r}") from None
    return entry_cls.from_dict(d)


class GraphState:
    def __init__(self, expressions, random_seed, graph=None, version=SCHEMA_VERSION):
        self.version = version
        self.random_seed = random_seed
        self.graph = graph or GraphMeta()
        self.expressions = expressions  # list of entries, display order

    @classmethod
    def from_fragments(cls, fragments, rng=None):
        rng = rng or random.Random()
        entries = [entry_from_fragment(frag) for frag in fragments]
        return cls(entries, str(rng.randrange(0, SEED_LIMIT)))

    def to_dict(self):
        return {
            "version": self.version,
            "randomSeed": self.random_seed,
            "graph": self.graph.to_dict(),
            "expressions": {"list": [entry.to_dict() for entry in self.expressions]},
        }

    @classmethod
    def from_dict(cls, d):
        try:
            entries = [entry_from_dict(e) for e in d["expressions"]["list"]]
            return cls(
                entries,
                d["randomSeed"],
                graph=GraphMeta.from_dict(d["graph"]),
                version=d["version"],
            )
        except (KeyError, TypeError) as e:
            raise DocumentError(f"malformed graph state: {e}") from None


def dumps(state, indent=None):
    return json.dumps(state.to_dict(), indent=indent)


def loads(text):
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DocumentError(f"graph state is not valid JSON: {e}") from None
    return GraphState.from_dict(data)


def to_graph_state(fragments, rng=None):
    return GraphState.from_fragments(fragments, rng=rng).to_dict()
