from .assets import Favicon, Webmanifest, get_favicon, get_webmanifest
from .html_analyzer import analyze_html

__all__ = ['Favicon', 'Webmanifest', 'get_favicon', 'get_webmanifest', 'analyze_html']
