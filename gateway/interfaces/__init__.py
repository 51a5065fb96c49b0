from .indicator import Indicator
from .messenger import Messenger

__all__ = ["Indicator", "Messenger"]
