from unittest.mock import AsyncMock, MagicMock, call
import pytest
from dapprank.cache.cache_manager import CacheManager, cache_key
from dapprank.engines.chunking import split_script
from dapprank.engines.deduplication import deduplicate_by_key, deduplicate_distribution_items, deduplicate_fallbacks
from dapprank.engines.script_analyzer import ScriptAnalyzer, join_inline_scripts, merge_results
from dapprank.engines.url_validator import extract_domain, is_url_grounded, normalize_url, strip_api_key, validate_findings
from dapprank.exceptions import ClassifierError, ContextOverflowError, QuotaExhaustedError, RateLimitError
from dapprank.llm.rate_limiter import RateLimiter
from dapprank.llm.retry import RetryPolicy
from dapprank.models import FallbackFinding, NetworkingFinding, ScriptAnalysis
INFURA_SOURCE = 'const provider = new JsonRpcProvider("https://mainnet.infura.io/v3/" + key);'

def _networking(urls, type_='rpc', method='fetch'):
    return NetworkingFinding(method=method, urls=list(urls), type=type_)

@pytest.fixture
def analyzer(tmp_path, fake_classifier):
    return ScriptAnalyzer(classifier=fake_classifier, cache=CacheManager(tmp_path / 'cache'), rate_limiter=RateLimiter(50, sleep=AsyncMock()), retry_policy=RetryPolicy(transient_retries=2, transient_delay=0.0), sleep=AsyncMock())

class TestUrlValidation:

    def test_domain_in_source_keeps_url(self):
        assert is_url_grounded('https://mainnet.infura.io/v3/<api-key>', INFURA_SOURCE)

    def test_fabricated_domain_is_dropped(self):
        assert not is_url_grounded('https://evil.example/rpc', INFURA_SOURCE)

    def test_relative_url_matches_bare_form(self):
        assert is_url_grounded('/api/data', 'fetch("api/data")')
        assert is_url_grounded('./config.json', 'load("config.json")')

    def test_markers_are_always_grounded(self):
        assert is_url_grounded('<dynamic>', '')
        assert is_url_grounded('<arbitrary>', '')

    def test_verbatim_substring(self):
        assert is_url_grounded('wss://relay', 'connect("wss://relay")')

    def test_concatenated_hostname_is_not_grounded(self):
        assert not is_url_grounded('https://api.example.com', 'const u = "https://api." + "example.com"')

    def test_hostname_match_is_case_sensitive(self):
        assert is_url_grounded('https://rpc.example.com/v1', 'base = "https://rpc.example.com" + path')
        assert not is_url_grounded('https://rpc.example.com/v1', 'base = "https://RPC.EXAMPLE.COM" + path')

    def test_validate_findings(self):
        findings = [_networking(['https://mainnet.infura.io/v3/<api-key>']), _networking(['https://evil.example/rpc'], type_='auxiliary')]
        kept, dropped = validate_findings(findings, INFURA_SOURCE, 'app.js')
        assert [f.urls for f in kept] == [['https://mainnet.infura.io/v3/<api-key>']]
        assert dropped == ['https://evil.example/rpc']

    def test_findings_without_urls_are_kept(self):
        kept, dropped = validate_findings([_networking([])], '', 'app.js')
        assert len(kept) == 1
        assert dropped == []

    def test_partially_grounded_finding_keeps_valid_urls(self):
        finding = _networking(['https://mainnet.infura.io/v3/<api-key>', 'https://made.up/x'])
        kept, dropped = validate_findings([finding], INFURA_SOURCE)
        assert kept[0].urls == ['https://mainnet.infura.io/v3/<api-key>']
        assert dropped == ['https://made.up/x']

    def test_kept_urls_are_normalized_and_keys_stripped(self):
        source = 'fetch("https://Eth-Mainnet.g.alchemy.com/v2/abcdefghijklmnopqrstuvwxyz012345")'
        finding = _networking(['https://Eth-Mainnet.g.alchemy.com/v2/abcdefghijklmnopqrstuvwxyz012345'])
        kept, _ = validate_findings([finding], source)
        assert kept[0].urls == ['https://eth-mainnet.g.alchemy.com/v2/<api-key>']

    def test_normalize_url(self):
        assert normalize_url('https://Example.COM/path/') == 'https://example.com/path'
        assert normalize_url('https://example.com') == 'https://example.com/'
        assert normalize_url('./local/') == 'local'
        assert normalize_url('<dynamic>') == '<dynamic>'

    def test_extract_domain(self):
        assert extract_domain('https://Sub.Example.com:8443/x') == 'sub.example.com'
        assert extract_domain('/relative') == '/relative'

    def test_strip_api_key_query_param(self):
        assert strip_api_key('https://api.example.com/q?apiKey=ABCDEFGHIJKLMNOPQRSTUV') == 'https://api.example.com/q?apiKey=<api-key>'

class TestDeduplication:

    def test_networking_dedup_ignores_url_order(self):
        a = _networking(['https://a', 'https://b'])
        b = _networking(['https://b', 'https://a'])
        assert deduplicate_by_key([a, b]) == [a]

    def test_different_types_are_distinct(self):
        assert len(deduplicate_by_key([_networking(['x']), _networking(['x'], type_='auxiliary')])) == 2

    def test_fallbacks_by_type(self):
        result = deduplicate_fallbacks([FallbackFinding('rpc', 'first'), FallbackFinding('rpc', 'second'), FallbackFinding('bundler')])
        assert [(f.type, f.motivation) for f in result] == [('rpc', 'first'), ('bundler', '')]

    def test_distribution_items(self):
        items = [{'type': 'script', 'url': 'https://a'}, {'type': 'script', 'url': 'https://a', 'source': 'dynamic'}, {'type': 'img', 'url': 'https://a'}]
        assert len(deduplicate_distribution_items(items)) == 2

class TestChunking:

    def test_split_at_statement_boundary(self):
        script = 'const a = 1;\nconst b = 2;\nconst c = 3;\nconst d = 4;\n'
        first, second = split_script(script)
        assert first + second == script
        assert first and second
        assert second.startswith('const')

    def test_unparseable_script_splits_in_half(self):
        script = '{{{{ not javascript'
        first, second = split_script(script)
        assert first + second == script
        assert first and second

class TestMergeResults:

    def test_merge_ors_window_flag_and_dedups(self):
        a = ScriptAnalysis(window_ethereum=False, networking=[_networking(['https://a'])])
        b = ScriptAnalysis(window_ethereum=True, networking=[_networking(['https://a'])], fallbacks=[FallbackFinding('rpc')])
        merged = merge_results([a, b])
        assert merged.window_ethereum
        assert len(merged.networking) == 1
        assert len(merged.fallbacks) == 1

    def test_join_inline_scripts(self):
        joined = join_inline_scripts(['a()', 'b()'])
        assert joined == '// HTML Inline script 1\na()\n\n// HTML Inline script 2\nb()'

class TestCache:

    def test_get_missing(self, tmp_path):
        assert CacheManager(tmp_path).get('hash0001', 'cid-1') is None

    def test_set_then_get(self, tmp_path):
        cache = CacheManager(tmp_path)
        cache.set('hash0001', 'cid-1', {'windowEthereum': True})
        assert cache.get('hash0001', 'cid-1') == {'windowEthereum': True}
        assert cache.get('hash0002', 'cid-1') is None

    def test_key_is_filesystem_safe(self):
        key = cache_key('bafybeibj6lixxzqtsb45ysdjnupvqkufgdvzqbnvmhw2kf7cfkesy7r7d4')
        assert '/' not in key
        assert '=' not in key

    def test_non_cid_reference_hashes(self):
        assert len(cache_key('not-a-cid')) == 64

class TestScriptAnalyzer:

    @pytest.mark.asyncio
    async def test_grounded_networking_is_kept(self, analyzer, fake_classifier):
        fake_classifier.classify.return_value = {'windowEthereum': True, 'networking': [{'method': 'JsonRpcProvider', 'urls': ['https://mainnet.infura.io/v3/<api-key>'], 'type': 'rpc', 'motivation': 'rpc'}], 'fallbacks': [], 'dynamicResourceLoading': []}
        result = await analyzer.analyze_source(INFURA_SOURCE, 'app.js', 'cid-app')
        assert result.window_ethereum
        assert [n.urls for n in result.networking] == [['https://mainnet.infura.io/v3/<api-key>']]
        assert result.invalid_dynamic_urls == []

    @pytest.mark.asyncio
    async def test_fabricated_urls_are_recorded(self, analyzer, fake_classifier):
        fake_classifier.classify.return_value = {'networking': [{'method': 'fetch', 'urls': ['https://evil.example/api'], 'type': 'auxiliary'}], 'dynamicResourceLoading': [{'method': 'import', 'urls': ['https://cdn.fake/x.js'], 'type': 'script'}]}
        result = await analyzer.analyze_source(INFURA_SOURCE, 'app.js', 'cid-app')
        assert result.networking == []
        assert result.dynamic_resource_loading == []
        assert result.invalid_dynamic_urls == ['https://evil.example/api', 'https://cdn.fake/x.js']

    @pytest.mark.asyncio
    async def test_second_call_uses_cache(self, analyzer, fake_classifier):
        first = await analyzer.analyze_source(INFURA_SOURCE, 'app.js', 'cid-app')
        fake_classifier.classify.return_value = {'windowEthereum': True, 'networking': [{'method': 'fetch', 'urls': ['https://mainnet.infura.io/v3/<api-key>'], 'type': 'rpc'}]}
        second = await analyzer.analyze_source(INFURA_SOURCE, 'app.js', 'cid-app')
        assert fake_classifier.classify.await_count == 1
        assert first.serialize() == second.serialize()
        assert not second.window_ethereum

    @pytest.mark.asyncio
    async def test_context_overflow_splits_into_chunks(self, analyzer, fake_classifier):
        source = 'const a = fetch("https://one.example/a");\nconst b = fetch("https://two.example/b");\n'

        async def classify(text, label):
            if text == source:
                raise ContextOverflowError('token count exceeds')
            url = 'https://one.example/a' if 'one.example' in text else 'https://two.example/b'
            return {'networking': [{'method': 'fetch', 'urls': [url], 'type': 'auxiliary'}]}
        fake_classifier.classify.side_effect = classify
        result = await analyzer.analyze_source(source, 'app.js', 'cid-big')
        assert fake_classifier.classify.await_count == 3
        assert sorted((n.urls[0] for n in result.networking)) == ['https://one.example/a', 'https://two.example/b']

    @pytest.mark.asyncio
    async def test_overflow_beyond_max_depth_propagates(self, tmp_path, fake_classifier):
        fake_classifier.classify.side_effect = ContextOverflowError('token count exceeds')
        analyzer = ScriptAnalyzer(classifier=fake_classifier, cache=CacheManager(tmp_path), rate_limiter=RateLimiter(50, sleep=AsyncMock()), max_split_depth=1, sleep=AsyncMock())
        with pytest.raises(ContextOverflowError):
            await analyzer.analyze_source('const a = 1;\nconst b = 2;\n', 'app.js', 'cid-x')
        assert fake_classifier.classify.await_count == 2

    @pytest.mark.asyncio
    async def test_transient_error_is_retried(self, analyzer, fake_classifier):
        fake_classifier.classify.side_effect = [ClassifierError('timeout'), {'windowEthereum': True}]
        result = await analyzer.analyze_source('x', 'app.js', 'cid-retry')
        assert result.window_ethereum
        assert fake_classifier.classify.await_count == 2

    @pytest.mark.asyncio
    async def test_quota_is_not_retried(self, analyzer, fake_classifier):
        fake_classifier.classify.side_effect = QuotaExhaustedError('quota exceeded')
        with pytest.raises(QuotaExhaustedError):
            await analyzer.analyze_source('x', 'app.js', 'cid-quota')
        assert fake_classifier.classify.await_count == 1

    @pytest.mark.asyncio
    async def test_rate_limit_waits_cooldown_then_gives_up(self, tmp_path, fake_classifier):
        fake_classifier.classify.side_effect = RateLimitError('429 Too Many Requests')
        limiter = MagicMock()
        limiter.wait_for_slot = AsyncMock()
        sleep = AsyncMock()
        analyzer = ScriptAnalyzer(classifier=fake_classifier, cache=CacheManager(tmp_path), rate_limiter=limiter, sleep=sleep)
        with pytest.raises(RateLimitError):
            await analyzer.analyze_source('x', 'app.js', 'cid-limited')
        assert fake_classifier.classify.await_count == 3
        assert sleep.await_args_list == [call(60.0), call(60.0)]
        assert limiter.on_rate_limit_error.call_count == 3
        assert limiter.wait_for_slot.await_count == 3

    @pytest.mark.asyncio
    async def test_rate_limit_recovers(self, tmp_path, fake_classifier):
        fake_classifier.classify.side_effect = [RateLimitError('429'), {'windowEthereum': True}]
        sleep = AsyncMock()
        analyzer = ScriptAnalyzer(classifier=fake_classifier, cache=CacheManager(tmp_path), rate_limiter=RateLimiter(50, sleep=AsyncMock()), sleep=sleep)
        result = await analyzer.analyze_source('x', 'app.js', 'cid-limited')
        assert result.window_ethereum
        sleep.assert_awaited_once_with(60.0)

    @pytest.mark.asyncio
    async def test_inline_scripts_unit(self, analyzer, fake_classifier, fake_kubo):
        entry = {'path': 'index.html', 'size': 10, 'cid': 'cid-index', 'inlineScripts': ['a()', 'b()']}
        await analyzer.analyze_file(fake_kubo, entry)
        source, label = fake_classifier.classify.call_args.args
        assert label == 'index.html#inline-scripts'
        assert '// HTML Inline script 2\nb()' in source

    @pytest.mark.asyncio
    async def test_js_file_unit(self, analyzer, fake_classifier, fake_kubo):
        fake_kubo.add_file('cid-app', 'console.log(1)')
        await analyzer.analyze_file(fake_kubo, {'path': 'js/app.js', 'size': 14, 'cid': 'cid-app'})
        assert fake_classifier.classify.call_args.args == ('console.log(1)', 'js/app.js')

    @pytest.mark.asyncio
    async def test_other_files_have_no_unit(self, analyzer, fake_classifier, fake_kubo):
        assert await analyzer.analyze_file(fake_kubo, {'path': 'style.css', 'size': 1, 'cid': 'cid-css'}) is None
        assert fake_classifier.classify.await_count == 0
