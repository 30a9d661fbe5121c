# stockscan/core/quantity.py
import re

from stockscan.config.settings import SessionConfig

_INTEGER = re.compile(r"^[+-]?\d+$")


class QuantityInput:
    """Pending quantity for the next action.

    Keystrokes land in ``draft``. A draft that parses as an integer updates
    ``value`` at once (clamped); anything else stays in the draft until
    ``commit()`` drops it and keeps the last valid value. ``value`` is
    therefore always inside the bounds.
    """

    def __init__(self, minimum=SessionConfig.QUANTITY_MIN,
                 maximum=SessionConfig.QUANTITY_MAX,
                 default=SessionConfig.QUANTITY_DEFAULT):
        if not minimum <= default <= maximum:
            raise ValueError(f"Default {default} outside [{minimum}, {maximum}]")
        self.minimum = minimum
        self.maximum = maximum
        self.default = default
        self.value = default
        self.draft = None

    def clamp(self, quantity):
        return max(self.minimum, min(self.maximum, quantity))

    def set(self, quantity):
        self.value = self.clamp(int(quantity))
        self.draft = None
        return self.value

    def set_draft(self, text):
        self.draft = text
        text = (text or "").strip()
        if _INTEGER.match(text):
            self.value = self.clamp(int(text))
        return self.value

    def commit(self):
        """Blur: reconcile the draft to the last valid value."""
        self.draft = None
        return self.value

    def increment(self):
        return self.set(self.value + 1)

    def decrement(self):
        return self.set(self.value - 1)

    def reset(self):
        return self.set(self.default)

    @property
    def display(self):
        return self.draft if self.draft is not None else str(self.value)
