from .extraction import ExtractionPort
from .sink import SinkPort
from .source import ProfileSourcePort

__all__ = [
    "ExtractionPort",
    "SinkPort",
    "ProfileSourcePort",
]
