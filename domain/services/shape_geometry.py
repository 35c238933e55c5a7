from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Protocol

from domain.models import Point

CYLINDER_CAP_MAX = 20.0
CYLINDER_CAP_RATIO = 0.15
ROUNDED_RECT_RADIUS = 8.0


class ShapeLike(Protocol):
    shape_kind: str
    x: float
    y: float
    w: float
    h: float


@dataclass(frozen=True)
class ShapeBox:
    x: float
    y: float
    w: float
    h: float

    @property
    def cx(self) -> float:
        return self.x + self.w / 2

    @property
    def cy(self) -> float:
        return self.y + self.h / 2

    @property
    def hw(self) -> float:
        return self.w / 2

    @property
    def hh(self) -> float:
        return self.h / 2


AnchorFn = Callable[[ShapeBox, float, float], Point]
OutlineFn = Callable[[float, float], str]


@dataclass(frozen=True)
class ShapeStrategy:
    anchor: AnchorFn
    outline: OutlineFn


@dataclass(frozen=True)
class PortDefinition:
    port_id: str
    nx: float
    ny: float


CARDINAL_PORTS: tuple[PortDefinition, ...] = (
    PortDefinition("top", 0.5, 0.0),
    PortDefinition("right", 1.0, 0.5),
    PortDefinition("bottom", 0.5, 1.0),
    PortDefinition("left", 0.0, 0.5),
)


def format_number(value: float) -> str:
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return "0" if text in {"-0", ""} else text


def cylinder_cap_height(h: float) -> float:
    return min(h * CYLINDER_CAP_RATIO, CYLINDER_CAP_MAX)


def anchor_point(shape: ShapeLike, toward: Point) -> Point:
    box = ShapeBox(shape.x, shape.y, shape.w, shape.h)
    dx = toward.x - box.cx
    dy = toward.y - box.cy
    if dx == 0 and dy == 0:
        return Point(box.cx, box.y + box.h)
    if box.w <= 0 or box.h <= 0:
        return _rect_anchor(box, dx, dy)
    strategy = SHAPE_STRATEGIES.get(shape.shape_kind, SHAPE_STRATEGIES["box"])
    return strategy.anchor(box, dx, dy)


def outline_path(shape_kind: str, w: float, h: float) -> str:
    strategy = SHAPE_STRATEGIES.get(shape_kind, SHAPE_STRATEGIES["box"])
    return strategy.outline(w, h)


def port_positions(
    w: float, h: float, ports: tuple[PortDefinition, ...] = CARDINAL_PORTS
) -> List[tuple[str, Point]]:
    return [(port.port_id, Point(port.nx * w, port.ny * h)) for port in ports]


def _rect_anchor(box: ShapeBox, dx: float, dy: float) -> Point:
    t = math.inf
    if dx != 0:
        t = min(t, box.hw / abs(dx))
    if dy != 0:
        t = min(t, box.hh / abs(dy))
    if not math.isfinite(t):
        t = 1.0
    return Point(box.cx + dx * t, box.cy + dy * t)


def _ellipse_anchor(box: ShapeBox, dx: float, dy: float) -> Point:
    angle = math.atan2(dy, dx)
    return Point(box.cx + box.hw * math.cos(angle), box.cy + box.hh * math.sin(angle))


def _diamond_anchor(box: ShapeBox, dx: float, dy: float) -> Point:
    denom = abs(dx) / box.hw + abs(dy) / box.hh
    t = 1 / denom if denom > 0 else 1.0
    return Point(box.cx + dx * t, box.cy + dy * t)


def _far_root(a: float, b: float, c: float) -> float:
    if a <= 0:
        return 0.0
    disc = max(b * b - 4 * a * c, 0.0)
    return (-b + math.sqrt(disc)) / (2 * a)


def _cylinder_anchor(box: ShapeBox, dx: float, dy: float) -> Point:
    cap = cylinder_cap_height(box.h)
    body_top = box.y + cap
    body_bottom = box.y + box.h - cap

    if dx != 0:
        t_side = box.hw / abs(dx)
        hit_y = box.cy + dy * t_side
        if body_top <= hit_y <= body_bottom:
            return Point(box.cx + dx * t_side, hit_y)

    if cap <= 0:
        return _rect_anchor(box, dx, dy)

    # Outer half of the top or bottom cap ellipse (rx = half width, ry = cap).
    cap_cy = body_top if dy < 0 else body_bottom
    k = box.cy - cap_cy
    rx2 = box.hw * box.hw
    ry2 = cap * cap
    a = dx * dx / rx2 + dy * dy / ry2
    b = 2 * k * dy / ry2
    c = k * k / ry2 - 1
    t = _far_root(a, b, c)
    return Point(box.cx + dx * t, box.cy + dy * t)


def _circle_exit(
    box: ShapeBox, dx: float, dy: float, ox: float, oy: float, radius: float
) -> Point:
    # Ray from the shape center against a cap circle centered at center + (ox, oy).
    a = dx * dx + dy * dy
    b = -2 * (dx * ox + dy * oy)
    c = ox * ox + oy * oy - radius * radius
    t = _far_root(a, b, c)
    return Point(box.cx + dx * t, box.cy + dy * t)


def _stadium_anchor(box: ShapeBox, dx: float, dy: float) -> Point:
    hw, hh = box.hw, box.hh
    radius = min(hw, hh)

    if hw >= hh:
        body_hw = hw - radius
        if abs(dx) * hh > abs(dy) * body_hw:
            offset = body_hw if dx > 0 else -body_hw
            return _circle_exit(box, dx, dy, offset, 0.0, radius)
        t = hh / abs(dy)
        return Point(box.cx + dx * t, box.cy + dy * t)

    body_hh = hh - radius
    if abs(dy) * hw > abs(dx) * body_hh:
        offset = body_hh if dy > 0 else -body_hh
        return _circle_exit(box, dx, dy, 0.0, offset, radius)
    t = hw / abs(dx)
    return Point(box.cx + dx * t, box.cy + dy * t)


def _box_outline(w: float, h: float) -> str:
    f = format_number
    return f"M 0 0 L {f(w)} 0 L {f(w)} {f(h)} L 0 {f(h)} Z"


def _rounded_rect_outline(w: float, h: float) -> str:
    f = format_number
    r = max(min(ROUNDED_RECT_RADIUS, w / 2, h / 2), 0.0)
    return (
        f"M {f(r)} 0 L {f(w - r)} 0 Q {f(w)} 0 {f(w)} {f(r)} "
        f"L {f(w)} {f(h - r)} Q {f(w)} {f(h)} {f(w - r)} {f(h)} "
        f"L {f(r)} {f(h)} Q 0 {f(h)} 0 {f(h - r)} "
        f"L 0 {f(r)} Q 0 0 {f(r)} 0 Z"
    )


def _diamond_outline(w: float, h: float) -> str:
    f = format_number
    return f"M {f(w / 2)} 0 L {f(w)} {f(h / 2)} L {f(w / 2)} {f(h)} L 0 {f(h / 2)} Z"


def _ellipse_outline(w: float, h: float) -> str:
    f = format_number
    rx, ry = f(w / 2), f(h / 2)
    return (
        f"M 0 {ry} A {rx} {ry} 0 1 0 {f(w)} {ry} "
        f"A {rx} {ry} 0 1 0 0 {ry} Z"
    )


def _cylinder_outline(w: float, h: float) -> str:
    f = format_number
    cap = cylinder_cap_height(h)
    rx = f(w / 2)
    ry = f(cap)
    top, bottom = f(cap), f(h - cap)
    body = (
        f"M 0 {top} L 0 {bottom} A {rx} {ry} 0 0 0 {f(w)} {bottom} "
        f"L {f(w)} {top}"
    )
    rim = f"M 0 {top} A {rx} {ry} 0 1 1 {f(w)} {top} A {rx} {ry} 0 1 1 0 {top} Z"
    return f"{body} {rim}"


def _stadium_outline(w: float, h: float) -> str:
    f = format_number
    if w >= h:
        r = h / 2
        return (
            f"M {f(r)} 0 L {f(w - r)} 0 A {f(r)} {f(r)} 0 0 1 {f(w - r)} {f(h)} "
            f"L {f(r)} {f(h)} A {f(r)} {f(r)} 0 0 1 {f(r)} 0 Z"
        )
    r = w / 2
    return (
        f"M {f(w)} {f(r)} L {f(w)} {f(h - r)} A {f(r)} {f(r)} 0 0 1 0 {f(h - r)} "
        f"L 0 {f(r)} A {f(r)} {f(r)} 0 0 1 {f(w)} {f(r)} Z"
    )


SHAPE_STRATEGIES: Dict[str, ShapeStrategy] = {
    "box": ShapeStrategy(anchor=_rect_anchor, outline=_box_outline),
    "rounded_rect": ShapeStrategy(anchor=_rect_anchor, outline=_rounded_rect_outline),
    "circle": ShapeStrategy(anchor=_ellipse_anchor, outline=_ellipse_outline),
    "diamond": ShapeStrategy(anchor=_diamond_anchor, outline=_diamond_outline),
    "cylinder": ShapeStrategy(anchor=_cylinder_anchor, outline=_cylinder_outline),
    "stadium": ShapeStrategy(anchor=_stadium_anchor, outline=_stadium_outline),
}
