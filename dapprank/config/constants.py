from pathlib import Path

class DappRankConstants:
    VERSION = '0.4.0'
    PACKAGE_ROOT = Path(__file__).parent.parent
    DATA_DIR = PACKAGE_ROOT / 'data'
    PROMPTS_DIR = DATA_DIR / 'prompts'
    ANALYSIS_VERSION = 4
    RANK_VERSION = 1
    AI_REQUESTS_PER_MINUTE = 50
    DEFAULT_LLM_MODEL = 'gemini/gemini-2.5-pro'
    DEFAULT_LLM_MAX_TOKENS = 8192
    DEFAULT_LLM_TEMPERATURE = 0.1
    DEFAULT_IPFS_URL = 'http://localhost:5001'
    DEFAULT_RPC_URL = 'https://eth.drpc.org'
    DEFAULT_ENS_SUBGRAPH_URL = 'https://api.mainnet.ensnode.io/subgraph'
    DEFAULT_MFS_ROOT = '/dapprank-data'
    ARCHIVE_DIR = '/archive'
    INDEX_DIR = '/index'
    STATE_FILE = '/state.json'
    BUCKET_SIZE = 25
    MAX_NAME_LENGTH = 200
    LINK_NON_FETCHING_REL_VALUES = ('alternate', 'author', 'help', 'license', 'next', 'prev', 'nofollow', 'noopener', 'noreferrer', 'bookmark', 'tag', 'external', 'no-follow', 'canonical')
    INLINE_SCRIPT_TYPES = ('', 'text/javascript', 'application/javascript', 'module')
    EXTERNAL_MEDIA_TAGS = ('img', 'video', 'audio', 'iframe', 'source', 'object', 'embed', 'track')
    FAVICON_PRIORITIES = {'ico': 100, 'png': 90, 'jpg': 80, 'jpeg': 80, 'gif': 70, 'svg': 60, 'webp': 50}
    ENS_REGISTRY_ADDRESS = '0x00000000000C2E074eC69A0dFb2997BA6C7d2e1e'
    ENS_NAME_WRAPPER_ADDRESS = '0xD4416b13d2b3a9aBae7AcD5D6C2BbDBE25686401'
    EIP7702_CODE_PREFIX = '0xef0100'

    @classmethod
    def get_prompts_path(cls) -> Path:
        return cls.PROMPTS_DIR

    @classmethod
    def get_data_path(cls) -> Path:
        return cls.DATA_DIR
