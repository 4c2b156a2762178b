from .client import KuboClient
from .contenthash import decode_contenthash, multihash_digest
from .walker import detect_mime_type, list_files

__all__ = ['KuboClient', 'decode_contenthash', 'multihash_digest', 'detect_mime_type', 'list_files']
