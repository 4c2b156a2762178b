import posixpath

SIGNATURES = (
    (b'\x89PNG\r\n\x1a\n', 'image/png'),
    (b'\xff\xd8\xff', 'image/jpeg'),
    (b'GIF87a', 'image/gif'),
    (b'GIF89a', 'image/gif'),
    (b'%PDF-', 'application/pdf'),
    (b'\x00\x00\x01\x00', 'image/x-icon'),
)

def sniff_mime_type(head: bytes) -> str:
    for signature, mime in SIGNATURES:
        if head.startswith(signature):
            return mime
    if head[:4] == b'RIFF' and head[8:12] == b'WEBP':
        return 'image/webp'
    try:
        text = head.decode('utf-8')
    except UnicodeDecodeError as e:
        # the sniffed prefix may end inside a multi-byte character
        if e.reason != 'unexpected end of data':
            return 'application/octet-stream'
        text = head[:e.start].decode('utf-8')
    text = text.lstrip('\ufeff').lstrip()
    lowered = text[:256].lower()
    if lowered.startswith('<!doctype html') or lowered.startswith('<html') or '<head' in lowered:
        return 'text/html'
    if lowered.startswith('<svg') or ('<?xml' in lowered and '<svg' in lowered):
        return 'image/svg+xml'
    if lowered.startswith('{') or lowered.startswith('['):
        return 'application/json'
    return 'text/plain'

def get_file_extension(path: str) -> str:
    return posixpath.splitext(path)[1].lstrip('.').lower()

def normalize_tree_path(href: str, base_dir: str='') -> str:
    """Resolve an href found in a document at ``base_dir`` to a tree path."""
    href = href.split('#', 1)[0].split('?', 1)[0]
    if href.startswith('/'):
        joined = href.lstrip('/')
    else:
        joined = posixpath.join(base_dir, href) if base_dir else href
    normalized = posixpath.normpath(joined)
    return '' if normalized == '.' else normalized
