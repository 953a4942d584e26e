from .popups import dismiss_popups, force_remove_overlays
from .scrolling import scroll_lazy_content

__all__ = [
    "dismiss_popups",
    "force_remove_overlays",
    "scroll_lazy_content",
]
