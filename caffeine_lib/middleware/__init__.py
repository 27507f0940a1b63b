from .auth import JWTAuthMiddleware, load_public_key
from .brotli import BrotliCompression

__all__ = [
	"BrotliCompression",
	"JWTAuthMiddleware",
	"load_public_key",
]
