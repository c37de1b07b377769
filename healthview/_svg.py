"""Draw commands and their SVG serialization.

Renderers produce a flat, ordered list of draw commands. Keeping the
commands as plain dataclasses lets tests assert on geometry directly, while
``render_svg`` turns the same list into markup for the HTML snapshot.
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass

SVG_NS = "http://www.w3.org/2000/svg"

ET.register_namespace("", SVG_NS)


@dataclass(frozen=True)
class Line:
    x1: float
    y1: float
    x2: float
    y2: float
    stroke: str
    width: float = 1
    dash: tuple[float, ...] = ()


@dataclass(frozen=True)
class Text:
    x: float
    y: float
    text: str
    fill: str
    anchor: str = "start"  # start, middle or end
    size: int = 11


@dataclass(frozen=True)
class Polyline:
    points: tuple[tuple[float, float], ...]
    stroke: str
    width: float = 2


@dataclass(frozen=True)
class Area:
    """Closed polygon filled beneath a series line."""

    points: tuple[tuple[float, float], ...]
    fill: str


@dataclass(frozen=True)
class Circle:
    cx: float
    cy: float
    r: float
    fill: str


@dataclass(frozen=True)
class Box:
    x: float
    y: float
    width: float
    height: float
    fill: str
    stroke: str | None = None
    radius: float = 0
    css_class: str | None = None


DrawCommand = Line | Text | Polyline | Area | Circle | Box


def _fmt(value: float) -> str:
    return f"{value:.1f}".rstrip("0").rstrip(".")


def _points(points: tuple[tuple[float, float], ...]) -> str:
    return " ".join(f"{_fmt(x)},{_fmt(y)}" for x, y in points)


def _append(parent: ET.Element, cmd: DrawCommand) -> None:
    tag = f"{{{SVG_NS}}}"
    if isinstance(cmd, Line):
        el = ET.SubElement(
            parent,
            tag + "line",
            x1=_fmt(cmd.x1),
            y1=_fmt(cmd.y1),
            x2=_fmt(cmd.x2),
            y2=_fmt(cmd.y2),
            stroke=cmd.stroke,
        )
        el.set("stroke-width", _fmt(cmd.width))
        if cmd.dash:
            el.set("stroke-dasharray", " ".join(_fmt(d) for d in cmd.dash))
    elif isinstance(cmd, Text):
        el = ET.SubElement(parent, tag + "text", x=_fmt(cmd.x), y=_fmt(cmd.y), fill=cmd.fill)
        el.set("text-anchor", cmd.anchor)
        el.set("font-size", str(cmd.size))
        el.set("font-family", "monospace")
        el.text = cmd.text
    elif isinstance(cmd, Polyline):
        el = ET.SubElement(parent, tag + "polyline", points=_points(cmd.points), fill="none", stroke=cmd.stroke)
        el.set("stroke-width", _fmt(cmd.width))
    elif isinstance(cmd, Area):
        ET.SubElement(parent, tag + "polygon", points=_points(cmd.points), fill=cmd.fill)
    elif isinstance(cmd, Circle):
        ET.SubElement(parent, tag + "circle", cx=_fmt(cmd.cx), cy=_fmt(cmd.cy), r=_fmt(cmd.r), fill=cmd.fill)
    elif isinstance(cmd, Box):
        el = ET.SubElement(
            parent,
            tag + "rect",
            x=_fmt(cmd.x),
            y=_fmt(cmd.y),
            width=_fmt(cmd.width),
            height=_fmt(cmd.height),
            fill=cmd.fill,
        )
        if cmd.stroke:
            el.set("stroke", cmd.stroke)
        if cmd.radius:
            el.set("rx", _fmt(cmd.radius))
        if cmd.css_class:
            el.set("class", cmd.css_class)
    else:
        raise TypeError(f"Unsupported draw command: {cmd!r}")


def render_svg(width: float, height: float, commands: list[DrawCommand], css_class: str | None = None) -> str:
    """Serialize draw commands into a standalone ``<svg>`` element."""
    svg = ET.Element(
        f"{{{SVG_NS}}}svg",
        width=_fmt(width),
        height=_fmt(height),
        viewBox=f"0 0 {_fmt(width)} {_fmt(height)}",
    )
    if css_class:
        svg.set("class", css_class)
    for cmd in commands:
        _append(svg, cmd)
    return ET.tostring(svg, encoding="unicode")
