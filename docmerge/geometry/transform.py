from dataclasses import dataclass


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def __sub__(self, other: "Point") -> "Point":
        return Point(self.x - other.x, self.y - other.y)


def _require_positive(scale: float) -> None:
    if scale <= 0:
        raise ValueError(f"Zoom scale must be positive, got {scale}")


def screen_to_document(point: Point, scale: float) -> Point:
    """Convert a screen-pixel point (relative to the page origin) to document space."""
    _require_positive(scale)
    return Point(point.x / scale, point.y / scale)


def document_to_screen(point: Point, scale: float) -> Point:
    _require_positive(scale)
    return Point(point.x * scale, point.y * scale)


def clamp_zoom(scale: float, min_zoom: float = 0.5, max_zoom: float = 2.0) -> float:
    return max(min_zoom, min(max_zoom, scale))
