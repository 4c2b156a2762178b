from .base import ContentStore, StoreMixin
from .filesystem import FilesystemStore
from .mfs import MfsStore

__all__ = ['ContentStore', 'StoreMixin', 'FilesystemStore', 'MfsStore']
