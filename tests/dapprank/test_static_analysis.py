import json
import pytest
from dapprank.static_analysis.assets import decode_data_url, get_favicon, get_webmanifest
from dapprank.static_analysis.html_analyzer import analyze_html, is_inline_javascript
from dapprank.utils.file_utils import normalize_tree_path
PAGE = '\n<!DOCTYPE html>\n<html>\n<head>\n  <title> My Dapp </title>\n  <meta name="description" content="A censorship resistant dapp">\n  <script src="https://cdn.example.com/lib.js"></script>\n  <link rel="stylesheet" href="https://fonts.example.com/font.css">\n  <link rel="canonical" href="https://mydapp.example/">\n  <link rel="manifest" href="/app.webmanifest">\n  <script src="./local.js"></script>\n  <script>window.ethereum.request({method: "eth_accounts"})</script>\n  <script type="application/ld+json">{"@context": "https://schema.org"}</script>\n  <script type="module">import("./chunk.js")</script>\n</head>\n<body>\n  <img src="https://images.example.com/logo.png">\n  <img src="/local.png">\n  <iframe src="https://embed.example.com/widget"></iframe>\n</body>\n</html>\n'

class TestHtmlAnalyzer:

    def test_metadata(self):
        result = analyze_html(PAGE)
        assert result['metadata'] == {'title': 'My Dapp', 'description': 'A censorship resistant dapp'}

    def test_external_scripts_skip_non_fetching_links(self):
        scripts = analyze_html(PAGE)['distributionPurity']['externalScripts']
        assert scripts == [{'type': 'script', 'url': 'https://cdn.example.com/lib.js'}, {'type': 'link', 'url': 'https://fonts.example.com/font.css'}]

    def test_external_media(self):
        media = analyze_html(PAGE)['distributionPurity']['externalMedia']
        assert {'type': 'img', 'url': 'https://images.example.com/logo.png'} in media
        assert {'type': 'iframe', 'url': 'https://embed.example.com/widget'} in media
        assert len(media) == 2

    def test_inline_scripts_only_javascript(self):
        inline = analyze_html(PAGE)['inlineScripts']
        assert len(inline) == 2
        assert 'window.ethereum' in inline[0]
        assert 'import(' in inline[1]

    def test_empty_document(self):
        result = analyze_html('')
        assert result['metadata'] == {'title': '', 'description': ''}
        assert result['inlineScripts'] == []

    @pytest.mark.parametrize('script_type,expected', [(None, True), ('', True), ('text/javascript', True), ('module', True), ('application/x-javascript', True), ('application/json', False), ('text/template', False)])
    def test_is_inline_javascript(self, script_type, expected):
        assert is_inline_javascript(script_type) is expected

class TestPathNormalization:

    @pytest.mark.parametrize('href,base,expected', [('/app.webmanifest', '', 'app.webmanifest'), ('./icons/a.png', 'static', 'static/icons/a.png'), ('../a.png', 'static/m', 'static/a.png'), ('/icon.png?v=2#x', 'static', 'icon.png'), ('.', '', '')])
    def test_normalize_tree_path(self, href, base, expected):
        assert normalize_tree_path(href, base) == expected

def _files(fake_kubo, tree):
    fake_kubo.add_tree('root', tree)
    return [{'path': e['name'], 'size': e['size'], 'cid': e['cid']} for e in fake_kubo.links['root'] if e['type'] == 'file']

class TestWebmanifest:

    @pytest.mark.asyncio
    async def test_manifest_from_link_with_icons(self, fake_kubo):
        manifest = {'name': 'App', 'icons': [{'src': 'icon.png'}, {'src': 'https://cdn.example.com/x.png'}], 'screenshots': [{'src': '/shot.png'}]}
        fake_kubo.add_tree('root', {'index.html': '<link rel="manifest" href="/app.webmanifest">', 'app.webmanifest': json.dumps(manifest), 'icon.png': b'\x89PNG', 'shot.png': b'\x89PNG2'})
        files = [{'path': e['name'], 'size': e['size'], 'cid': e['cid']} for e in fake_kubo.links['root']]
        result = await get_webmanifest(fake_kubo, files)
        assert json.loads(result.data) == manifest
        assert result.icons == [('icon.png', b'\x89PNG')]
        assert result.screenshots == [('shot.png', b'\x89PNG2')]

    @pytest.mark.asyncio
    async def test_fallback_manifest_path(self, fake_kubo):
        files = _files(fake_kubo, {'index.html': '<html></html>', 'manifest.json': '{"name": "Fallback"}'})
        result = await get_webmanifest(fake_kubo, files)
        assert json.loads(result.data)['name'] == 'Fallback'

    @pytest.mark.asyncio
    async def test_no_manifest(self, fake_kubo):
        files = _files(fake_kubo, {'index.html': '<html></html>'})
        result = await get_webmanifest(fake_kubo, files)
        assert result.data is None

    @pytest.mark.asyncio
    async def test_invalid_manifest_json_keeps_raw_data(self, fake_kubo):
        files = _files(fake_kubo, {'manifest.json': 'not json'})
        result = await get_webmanifest(fake_kubo, files)
        assert result.data == b'not json'
        assert result.icons == []

    @pytest.mark.asyncio
    async def test_non_string_sources_are_skipped(self, fake_kubo):
        manifest = {'name': 'App', 'icons': [{'src': 5}, {'src': None}, 'icon.png', {'src': 'icon.png'}], 'screenshots': [{'src': ['shot.png']}]}
        files = _files(fake_kubo, {'manifest.json': json.dumps(manifest), 'icon.png': b'\x89PNG'})
        result = await get_webmanifest(fake_kubo, files)
        assert result.icons == [('icon.png', b'\x89PNG')]
        assert result.screenshots == []

class TestFavicon:

    @pytest.mark.asyncio
    async def test_highest_priority_icon_wins(self, fake_kubo):
        html = '<link rel="icon" type="image/svg+xml" href="/icon.svg"><link rel="shortcut icon" href="/favicon.ico">'
        files = _files(fake_kubo, {'index.html': html, 'icon.svg': '<svg></svg>', 'favicon.ico': b'\x00\x00\x01\x00'})
        favicon = await get_favicon(fake_kubo, files)
        assert favicon.path == 'favicon.ico'
        assert favicon.data == b'\x00\x00\x01\x00'

    @pytest.mark.asyncio
    async def test_type_attribute_names_the_asset(self, fake_kubo):
        files = _files(fake_kubo, {'index.html': '<link rel="icon" type="image/png" href="logo-64.png">', 'logo-64.png': b'\x89PNG'})
        favicon = await get_favicon(fake_kubo, files)
        assert favicon.path == 'favicon.png'
        assert favicon.data == b'\x89PNG'

    @pytest.mark.asyncio
    async def test_data_url_icon(self, fake_kubo):
        files = _files(fake_kubo, {'index.html': '<link rel="icon" href="data:image/png;base64,iVBORw0K">'})
        favicon = await get_favicon(fake_kubo, files)
        assert favicon.path == 'favicon.png'
        assert favicon.data.startswith(b'\x89PNG')

    @pytest.mark.asyncio
    async def test_favicon_ico_fallback(self, fake_kubo):
        files = _files(fake_kubo, {'index.html': '<html></html>', 'favicon.ico': b'ico'})
        favicon = await get_favicon(fake_kubo, files)
        assert favicon.path == 'favicon.ico'
        assert favicon.data == b'ico'

    @pytest.mark.asyncio
    async def test_no_favicon(self, fake_kubo):
        files = _files(fake_kubo, {'index.html': '<html></html>'})
        favicon = await get_favicon(fake_kubo, files)
        assert favicon.data is None

    def test_decode_plain_data_url(self):
        assert decode_data_url('data:image/svg+xml,%3Csvg%3E') == ('image/svg+xml', b'<svg>')
