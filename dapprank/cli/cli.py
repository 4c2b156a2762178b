import argparse
import asyncio
import json
import sys
from pathlib import Path
from ..cache.cache_manager import CacheManager
from ..config.config import Config
from ..exceptions import DappRankError
from ..governance.owner import OwnerAnalyzer
from ..governance.rpc import EthRpcClient
from ..indexing.index_builder import IndexBuilder
from ..ipfs.client import KuboClient
from ..llm.client import LLMClassifier
from ..llm.rate_limiter import RateLimiter
from ..pipeline.orchestrator import DRY_RUN_STEPS, AnalysisContext, AnalyzeManager
from ..reports.json_reporter import JSONReporter
from ..reports.table_reporter import TableReporter
from ..scan.scan_manager import ScanManager
from ..scoring.rank import calculate_rank_score
from ..storage.filesystem import FilesystemStore
from ..storage.mfs import MfsStore
from ..utils.logging_config import set_log_level, setup_logger
logger = setup_logger('dapprank.cli')

def build_config(args) -> Config:
    overrides = {key: value for key, value in {'ipfs_url': args.ipfs, 'rpc_url': args.rpc, 'directory': args.directory, 'cache_dir': args.cache, 'use_mfs': True if args.use_mfs else None, 'data_pointer': args.data_pointer, 'log_level': args.log_level}.items() if value is not None}
    overrides['force'] = args.force
    if args.config:
        return Config.from_file(Path(args.config), **overrides)
    return Config.from_env(**overrides)

def create_store(config: Config, kubo: KuboClient):
    if config.use_mfs:
        return MfsStore(kubo, config.data_pointer, root_path=config.mfs_root)
    if not config.directory:
        raise DappRankError('--directory (-d) option is required when --use-mfs is not set')
    return FilesystemStore(config.directory)

def read_previous_cid(config: Config) -> str | None:
    try:
        return Path(config.data_pointer).read_text(encoding='utf-8').strip() or None
    except OSError:
        return None

async def scan_command(args, config: Config) -> int:
    kubo = KuboClient(config.ipfs_url)
    store = create_store(config, kubo)
    scanner = ScanManager(store, config.ens_subgraph_url)
    try:
        await scanner.initialize()
        last_height = await scanner.get_last_scan_height()
        from_block = max(last_height - 1, 0)
        print(f'Scanning from block: {from_block}')
        result = await scanner.scan(from_block)
        print(f"Total changes processed: {result['totalChanges']}")
        print(f"Final block height: {result['lastBlockNumber']}")
        return 0
    finally:
        await scanner.aclose()
        await kubo.aclose()

async def analyze_command(args, config: Config) -> int:
    if args.dry_run and (not args.ens_name):
        print('Error: --dry-run can only be used when analyzing a specific ENS name', file=sys.stderr)
        return 1
    kubo = KuboClient(config.ipfs_url)
    rpc = EthRpcClient(config.rpc_url)
    try:
        store = create_store(config, kubo)
        classifier = LLMClassifier(model=config.llm_model, api_key=config.llm_api_key, base_url=config.llm_base_url, max_tokens=config.llm_max_tokens, temperature=config.llm_temperature, timeout=config.llm_timeout)
        context = AnalysisContext(kubo=kubo, cache=CacheManager(config.cache_dir), classifier=classifier, rate_limiter=RateLimiter(config.ai_requests_per_minute), owner_analyzer=OwnerAnalyzer(rpc))
        manager = AnalyzeManager(store, context, force=config.force)
        if args.ens_name and args.dry_run:
            result = await manager.dry_run(args.ens_name, args.dry_run)
            print(json.dumps(result, indent=2, default=str))
            return 0
        if args.ens_name:
            await manager.analyze_specific_name(args.ens_name)
            print(f'Analysis completed for {args.ens_name}')
            return 0
        failures = await (manager.analyze_backwards() if args.backwards else manager.analyze_forwards())
        print(f'Analysis completed with {len(failures)} failure(s)')
        return 0
    finally:
        await rpc.aclose()
        await kubo.aclose()

async def build_indexes_command(args, config: Config) -> int:
    kubo = KuboClient(config.ipfs_url)
    store = create_store(config, kubo)
    previous_cid = read_previous_cid(config) if isinstance(store, MfsStore) else None
    try:
        stats = await IndexBuilder(store).build_all_indexes()
    except DappRankError:
        if previous_cid:
            logger.info('Rolling back to previous state: %s', previous_cid)
            try:
                await store.restore_root(previous_cid)
            except DappRankError as rollback_error:
                print(f'Note: Rollback also failed: {rollback_error}', file=sys.stderr)
        raise
    finally:
        await kubo.aclose()
    if stats['scoredApps'] == 0:
        print('No apps could be scored. No indexes created.')
        return 0
    print(f"Total apps in archive: {stats['totalApps']}")
    print(f"Apps successfully scored: {stats['scoredApps']}")
    for category, category_stats in stats['categories'].items():
        print(f"  {category}: {category_stats['totalRanges']} ranges")
    print(f"Completed in {stats['elapsedSeconds']}s")
    return 0

async def rank_command(args, config: Config) -> int:
    kubo = KuboClient(config.ipfs_url)
    try:
        store = create_store(config, kubo)
        entries = await store.list_directory(f'/archive/{args.ens_name}') if await store.exists(f'/archive/{args.ens_name}') else []
        blocks = sorted((int(e['name']) for e in entries if e['type'] == 'directory' and e['name'].isdigit()))
        if not blocks:
            print(f'Error: No reports found for {args.ens_name}', file=sys.stderr)
            print(f'Please run: dapprank analyze {args.ens_name}', file=sys.stderr)
            return 1
        report_dir = f'/archive/{args.ens_name}/{blocks[-1]}'
        if not await store.exists(f'{report_dir}/report.json'):
            print(f'Error: Report file not found at: {report_dir}/report.json', file=sys.stderr)
            return 1
        report = await store.read_json(f'{report_dir}/report.json')
        score = await calculate_rank_score(report, store, report_dir)
    finally:
        await kubo.aclose()
    reporter = JSONReporter(pretty=True) if args.json else TableReporter()
    print(reporter.generate_report(args.ens_name, score))
    return 0
COMMANDS = {'scan': scan_command, 'analyze': analyze_command, 'build-idxs': build_indexes_command, 'rank': rank_command}

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='dapprank', description='DappRank - censorship resistance analysis for ENS-hosted dapps', formatter_class=argparse.RawDescriptionHelpFormatter, epilog='\nExamples:\n  # Record contenthash changes from the ENS subgraph\n  dapprank -d public/dapps scan\n\n  # Analyze everything scanned since the last run\n  dapprank -d public/dapps analyze\n\n  # Preview the networking analysis of one name\n  dapprank -d public/dapps analyze vitalik.eth --dry-run networking\n\n  # Build the browsable indexes\n  dapprank -d public/dapps build-idxs\n\n  # Show the rank score of one name\n  dapprank -d public/dapps rank vitalik.eth --json\n        ')
    parser.add_argument('--ipfs', help='Kubo RPC API URL (default: http://localhost:5001)')
    parser.add_argument('--rpc', help='Ethereum JSON-RPC URL used for owner analysis')
    parser.add_argument('-d', '--directory', help='Root directory of the filesystem store')
    parser.add_argument('-c', '--cache', help='Directory of the classifier result cache')
    parser.add_argument('-f', '--force', action='store_true', help='Overwrite existing reports')
    parser.add_argument('-l', '--log-level', choices=['error', 'warn', 'info', 'debug'], help='Log level (default: error)')
    parser.add_argument('--use-mfs', action='store_true', help='Store data in the IPFS node MFS instead of the filesystem')
    parser.add_argument('-p', '--data-pointer', help='File that receives the MFS root CID after each flush')
    parser.add_argument('--config', help='Path to a dotenv file with DAPPRANK_* settings')
    subparsers = parser.add_subparsers(dest='command', help='Command to execute')
    subparsers.add_parser('scan', help='Scan the ENS subgraph for contenthash changes')
    analyze_parser = subparsers.add_parser('analyze', help='Analyze scanned dapps')
    analyze_parser.add_argument('ens_name', nargs='?', help='Analyze only the latest block of this ENS name')
    analyze_parser.add_argument('-b', '--backwards', action='store_true', help='Analyze older blocks not yet covered')
    analyze_parser.add_argument('--dry-run', choices=sorted(DRY_RUN_STEPS), help='Run one part of the analysis without writing a report')
    subparsers.add_parser('build-idxs', help='Build the live and per-category score indexes')
    rank_parser = subparsers.add_parser('rank', help='Show the rank score of an analyzed ENS name')
    rank_parser.add_argument('ens_name', help='ENS name to rank')
    rank_parser.add_argument('--json', action='store_true', help='Print the score as JSON')
    return parser

def main(argv: list[str] | None=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1
    config = build_config(args)
    set_log_level(config.log_level)
    try:
        return asyncio.run(COMMANDS[args.command](args, config))
    except (DappRankError, ValueError) as e:
        print(f'Error: {e}', file=sys.stderr)
        if e.__cause__ is not None:
            logger.debug('Technical details: %s', e.__cause__)
        return 1
    except Exception as e:
        print(f'Unexpected error: {e}', file=sys.stderr)
        logger.debug('Unexpected error in %s command', args.command, exc_info=True)
        return 1
if __name__ == '__main__':
    sys.exit(main())
