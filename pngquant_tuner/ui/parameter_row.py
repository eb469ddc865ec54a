from __future__ import annotations

from dataclasses import dataclass

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import QDoubleSpinBox, QHBoxLayout, QLabel, QSlider, QSpinBox, QWidget


@dataclass(frozen=True)
class FieldSpec:
    name: str
    label: str
    minimum: float
    maximum: float
    step: float
    decimals: int = 0

    @property
    def slider_scale(self) -> int:
        return 10**self.decimals


# Sliders snap to these steps; the spin boxes accept any in-range value.
FIELDS = (
    FieldSpec("quality", "Quality", 10, 90, 10),
    FieldSpec("colors", "Colors", 48, 256, 16),
    FieldSpec("dither", "Floyd–Steinberg dithering", 0.0, 1.0, 0.1, decimals=1),
    FieldSpec("speed", "Speed/quality (S/Q)", 1, 11, 1),
)


class ParameterRow(QWidget):
    """Slider plus numeric entry for one conversion parameter.

    ``edited`` fires when the slider is released or the entry is committed, not
    on every slider tick while dragging.
    """

    edited = Signal(str, float)  # field name, value

    def __init__(self, spec: FieldSpec, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.spec = spec
        scale = spec.slider_scale

        self.label = QLabel(spec.label)
        self.slider = QSlider(Qt.Orientation.Horizontal)
        self.slider.setRange(int(spec.minimum * scale), int(spec.maximum * scale))
        self.slider.setSingleStep(int(spec.step * scale))
        self.slider.setPageStep(int(spec.step * scale))
        self.slider.setTickInterval(int(spec.step * scale))
        self.slider.setTickPosition(QSlider.TickPosition.TicksBelow)

        if spec.decimals:
            spin: QSpinBox | QDoubleSpinBox = QDoubleSpinBox()
            spin.setDecimals(spec.decimals)
            spin.setSingleStep(spec.step)
        else:
            spin = QSpinBox()
            spin.setSingleStep(1)
        spin.setRange(self._typed(spec.minimum), self._typed(spec.maximum))  # type: ignore[arg-type]
        spin.setKeyboardTracking(False)
        spin.setAlignment(Qt.AlignmentFlag.AlignRight)
        spin.setFixedWidth(72)
        self.spin = spin

        self.slider.valueChanged.connect(self._on_slider_moved)
        self.slider.sliderReleased.connect(self._on_slider_released)
        self.slider.actionTriggered.connect(self._on_slider_action)
        self.spin.editingFinished.connect(self._on_spin_committed)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(8, 4, 8, 4)
        self.label.setMinimumWidth(180)
        layout.addWidget(self.label)
        layout.addWidget(self.slider, 1)
        layout.addWidget(self.spin)

    def value(self) -> float:
        return float(self.spin.value())

    def set_value(self, value: float) -> None:
        """Reflect a (normalized) value without emitting ``edited``."""
        self.slider.blockSignals(True)
        self.spin.blockSignals(True)
        try:
            self.slider.setValue(round(float(value) * self.spec.slider_scale))
            self.spin.setValue(self._typed(value))  # type: ignore[arg-type]
        finally:
            self.slider.blockSignals(False)
            self.spin.blockSignals(False)

    def _typed(self, value: float) -> int | float:
        return round(float(value), self.spec.decimals) if self.spec.decimals else round(float(value))

    def _slider_value(self) -> float:
        return self.slider.value() / self.spec.slider_scale

    def _on_slider_moved(self, _raw: int) -> None:
        self.spin.blockSignals(True)
        try:
            self.spin.setValue(self._typed(self._slider_value()))  # type: ignore[arg-type]
        finally:
            self.spin.blockSignals(False)

    def _on_slider_released(self) -> None:
        self.edited.emit(self.spec.name, self._slider_value())

    def _on_slider_action(self, action: int) -> None:
        # Keyboard/page steps and clicks on the groove do not go through sliderReleased.
        if not self.slider.isSliderDown() and action != QSlider.SliderAction.SliderMove.value:
            self.slider.setValue(self.slider.sliderPosition())
            self.edited.emit(self.spec.name, self._slider_value())

    def _on_spin_committed(self) -> None:
        value = self.value()
        self.slider.blockSignals(True)
        try:
            self.slider.setValue(round(value * self.spec.slider_scale))
        finally:
            self.slider.blockSignals(False)
        self.edited.emit(self.spec.name, value)
