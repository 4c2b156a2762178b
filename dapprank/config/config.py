import os
from dataclasses import dataclass
from pathlib import Path
from dotenv import load_dotenv
from .constants import DappRankConstants

def read_env_flag(name: str) -> bool | None:
    value = os.getenv(name)
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized in ('true', '1', 'yes', 'on'):
        return True
    if normalized in ('false', '0', 'no', 'off'):
        return False
    return None

@dataclass
class Config:
    ipfs_url: str | None = None
    rpc_url: str | None = None
    directory: str | None = None
    cache_dir: str | None = None
    use_mfs: bool | None = None
    mfs_root: str | None = None
    data_pointer: str | None = None
    log_level: str | None = None
    force: bool = False
    llm_model: str | None = None
    llm_api_key: str | None = None
    llm_base_url: str | None = None
    llm_max_tokens: int = DappRankConstants.DEFAULT_LLM_MAX_TOKENS
    llm_temperature: float = DappRankConstants.DEFAULT_LLM_TEMPERATURE
    llm_timeout: int = 300
    ai_requests_per_minute: int | None = None
    ens_subgraph_url: str | None = None

    def __post_init__(self):
        if self.ipfs_url is None:
            self.ipfs_url = os.getenv('DAPPRANK_IPFS_URL', DappRankConstants.DEFAULT_IPFS_URL)
        if self.rpc_url is None:
            self.rpc_url = os.getenv('DAPPRANK_RPC_URL', DappRankConstants.DEFAULT_RPC_URL)
        if self.directory is None:
            self.directory = os.getenv('DAPPRANK_DIRECTORY', 'public/dapps')
        if self.cache_dir is None:
            self.cache_dir = os.getenv('DAPPRANK_CACHE_DIR', './llm-cache')
        if self.use_mfs is None:
            self.use_mfs = bool(read_env_flag('DAPPRANK_USE_MFS'))
        if self.mfs_root is None:
            self.mfs_root = os.getenv('DAPPRANK_MFS_ROOT', DappRankConstants.DEFAULT_MFS_ROOT)
        if self.data_pointer is None:
            self.data_pointer = os.getenv('DAPPRANK_DATA_POINTER', './data-pointer.txt')
        if self.log_level is None:
            self.log_level = os.getenv('DAPPRANK_LOG_LEVEL', 'error')
        if self.llm_model is None:
            self.llm_model = os.getenv('DAPPRANK_LLM_MODEL', DappRankConstants.DEFAULT_LLM_MODEL)
        if self.llm_api_key is None:
            self.llm_api_key = os.getenv('DAPPRANK_LLM_API_KEY') or os.getenv('GOOGLE_API_KEY')
        if self.llm_base_url is None:
            self.llm_base_url = os.getenv('DAPPRANK_LLM_BASE_URL')
        if self.ai_requests_per_minute is None:
            env_rpm = os.getenv('DAPPRANK_AI_REQUESTS_PER_MINUTE')
            self.ai_requests_per_minute = int(env_rpm) if env_rpm else DappRankConstants.AI_REQUESTS_PER_MINUTE
        if self.ens_subgraph_url is None:
            self.ens_subgraph_url = os.getenv('DAPPRANK_ENS_SUBGRAPH_URL', DappRankConstants.DEFAULT_ENS_SUBGRAPH_URL)

    @classmethod
    def from_env(cls, **overrides) -> 'Config':
        return cls(**overrides)

    @classmethod
    def from_file(cls, config_file: Path, **overrides) -> 'Config':
        if config_file.exists():
            load_dotenv(config_file, override=True)
        return cls.from_env(**overrides)
