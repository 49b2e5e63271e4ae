# Graph service submodules: people (nodes) and manual links (edges).
from . import links
from . import people

__all__ = [
    "links",
    "people",
]
