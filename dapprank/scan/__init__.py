from .scan_manager import ScanManager, safe_archive_name

__all__ = ['ScanManager', 'safe_archive_name']
