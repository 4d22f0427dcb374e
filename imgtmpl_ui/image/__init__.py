from .clip import ClipImage
from .embedded import decode_embedded_image
from .fixed import FixedImage

__all__ = ["ClipImage", "FixedImage", "decode_embedded_image"]
