"""Beat detection, filtering, presets, ESP-NOW frame transport and control for LED tubes."""

__version__ = "0.1.0"