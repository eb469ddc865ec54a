"""Preview zoom/pan/tab state as an immutable value.

Every UI gesture produces a new ViewState; the session owns the current one.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

MIN_SCALE = 0.1
MAX_SCALE = 5.0
ZOOM_STEP = 0.3
WHEEL_DIVISOR = 100.0

TAB_CONVERT = "convert"
TAB_SETTINGS = "settings"
TABS = (TAB_CONVERT, TAB_SETTINGS)


def _clamp_scale(value: float) -> float:
    return max(MIN_SCALE, min(MAX_SCALE, float(value)))


@dataclass(frozen=True)
class ViewState:
    scale: float = 1.0
    offset: tuple[float, float] = (0.0, 0.0)
    # Offset at the end of the last drag; a drag translation is relative to it.
    drag_origin: tuple[float, float] = (0.0, 0.0)
    tab: str = TAB_CONVERT

    def zoomed_in(self) -> ViewState:
        return replace(self, scale=_clamp_scale(round(self.scale + ZOOM_STEP, 2)))

    def zoomed_out(self) -> ViewState:
        return replace(self, scale=_clamp_scale(round(self.scale - ZOOM_STEP, 2)))

    def wheel_zoomed(self, delta: float) -> ViewState:
        factor = 1.0 + float(delta) / WHEEL_DIVISOR
        return replace(self, scale=_clamp_scale(self.scale * factor))

    def dragged(self, dx: float, dy: float) -> ViewState:
        ox, oy = self.drag_origin
        return replace(self, offset=(ox + float(dx), oy + float(dy)))

    def drag_ended(self) -> ViewState:
        return replace(self, drag_origin=self.offset)

    def reset(self) -> ViewState:
        return ViewState(tab=self.tab)

    def with_tab(self, tab: str) -> ViewState:
        if tab not in TABS:
            raise ValueError(f"unknown tab: {tab}")
        return replace(self, tab=tab)

    @property
    def scale_text(self) -> str:
        return f"{self.scale:.1f}x"
