import pytest
from dapprank.indexing import CATEGORIES, IndexBuilder, LiveApp
from dapprank.report.schema import new_report_content

def scored_report(owner_type='EOA', scripts=0):
    report = new_report_content()
    report['ownerAnalysis']['type'] = owner_type
    report['files'] = [{'path': 'index.html', 'size': 1, 'cid': 'c', 'distributionPurity': {'externalScripts': [{'type': 'script', 'url': f'https://cdn.example/{i}.js'} for i in range(scripts)], 'externalMedia': []}}]
    return report

async def add_app(store, name, block, report=None, contenthash='0xe301'):
    base = f'/archive/{name}/{block}'
    await store.write_json(f'{base}/metadata.json', {'contenthash': contenthash, 'tx': '0x1'})
    if report is not None:
        await store.write_json(f'{base}/report.json', report)

@pytest.fixture
def builder(store):
    return IndexBuilder(store, bucket_size=2)

class TestLiveApps:

    @pytest.mark.asyncio
    async def test_latest_block_with_report(self, store, builder):
        await add_app(store, 'a.eth', 5, scored_report())
        await add_app(store, 'a.eth', 12, scored_report())
        await add_app(store, 'b.eth', 3, scored_report())
        apps = await builder.get_all_live_apps()
        assert apps == [LiveApp('a.eth', 12), LiveApp('b.eth', 3)]
        assert apps[0].report_path == '/archive/a.eth/12/report.json'

    @pytest.mark.asyncio
    async def test_latest_block_without_report_hides_name(self, store, builder):
        await add_app(store, 'a.eth', 5, scored_report())
        await add_app(store, 'a.eth', 12)
        assert await builder.get_all_live_apps() == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize('contenthash', ['', '0x'])
    async def test_removed_content_is_skipped(self, store, builder, contenthash):
        await add_app(store, 'gone.eth', 7, scored_report(), contenthash=contenthash)
        assert await builder.get_all_live_apps() == []

    @pytest.mark.asyncio
    async def test_no_archive(self, builder):
        assert await builder.get_all_live_apps() == []

class TestScoring:

    @pytest.mark.asyncio
    async def test_outdated_report_is_skipped(self, store, builder):
        old = scored_report()
        old['version'] = 3
        await add_app(store, 'old.eth', 1, old)
        await add_app(store, 'new.eth', 1, scored_report())
        scored = await builder.score_apps(await builder.get_all_live_apps())
        assert [a.name for a in scored] == ['new.eth']
        assert scored[0].scores == {'total': 75, 'dist': 35, 'net': 30, 'gov': 10, 'mani': 0}

class TestBuildIndexes:

    @pytest.mark.asyncio
    async def test_build_all_indexes(self, store, builder):
        await add_app(store, 'a.eth', 1, scored_report('EOA', scripts=1))
        await add_app(store, 'b.eth', 1, scored_report('Safe'))
        await add_app(store, 'c.eth', 1, scored_report('DAO_Governor'))
        summary = await builder.build_all_indexes()
        assert summary['totalApps'] == 3
        assert summary['scoredApps'] == 3
        assert set(summary['categories']) == set(CATEGORIES)
        assert summary['categories']['total'] == {'totalRanges': 2, 'totalApps': 3}

        stats = await store.read_json('/index/live/stats.json')
        assert stats['count'] == 3
        assert stats['scoreStats'] == {'min': 70, 'max': 85, 'avg': (70 + 81 + 85) / 3}
        assert stats['maxScores'] == {'total': 100, 'distribution': 35, 'networking': 30, 'governance': 20, 'manifest': 15}
        assert await store.read_json('/index/live/a.eth/score.json') == {'rankVersion': 1, 'overallScore': 70, 'categories': {'distribution': 30, 'networking': 30, 'governance': 10, 'manifest': 0}}
        assert (await store.read_json('/index/live/b.eth/report.json'))['ownerAnalysis']['type'] == 'Safe'

        assert await store.exists('/index/score/total/1-2/c.eth/score.json')
        assert await store.exists('/index/score/total/1-2/b.eth/report.json')
        assert await store.exists('/index/score/total/3-4/a.eth/score.json')
        assert (await store.read_json('/index/score/total/3-4/stats.json'))['count'] == 1
        assert (await store.read_json('/index/score/total/stats.json'))['count'] == 3

    @pytest.mark.asyncio
    async def test_ties_ordered_by_name(self, store, builder):
        for name in ('c.eth', 'a.eth', 'b.eth'):
            await add_app(store, name, 1, scored_report())
        await builder.build_all_indexes()
        assert [e['name'] for e in await store.list_directory('/index/score/networking/1-2') if e['type'] == 'directory'] == ['a.eth', 'b.eth']
        assert await store.exists('/index/score/networking/3-4/c.eth/score.json')

    @pytest.mark.asyncio
    async def test_rebuild_removes_stale_entries(self, store, builder):
        await add_app(store, 'a.eth', 1, scored_report())
        await add_app(store, 'b.eth', 1, scored_report())
        await builder.build_all_indexes()
        await store.write_json('/archive/b.eth/2/metadata.json', {'contenthash': '0x', 'tx': '0x2'})
        await store.write_json('/archive/b.eth/2/report.json', scored_report())
        await builder.build_all_indexes()
        assert not await store.exists('/index/live/b.eth')
        assert not await store.exists('/index/score/total/1-2/b.eth')
        assert await store.exists('/index/score/total/1-2/a.eth/score.json')

    @pytest.mark.asyncio
    async def test_clean_index_keeps_stats(self, store, builder):
        await store.write_json('/index/live/stats.json', {'count': 1})
        await store.write_json('/index/live/x.eth/score.json', {})
        await builder.clean_index('/index/live')
        assert [e['name'] for e in await store.list_directory('/index/live')] == ['stats.json']

    @pytest.mark.asyncio
    async def test_nothing_scored_builds_nothing(self, store, builder):
        summary = await builder.build_all_indexes()
        assert summary['scoredApps'] == 0
        assert summary['categories'] == {}
        assert not await store.exists('/index/live/stats.json')
