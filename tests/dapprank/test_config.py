import os
from unittest.mock import patch
import pytest
from dapprank.config.config import Config, read_env_flag
from dapprank.config.constants import DappRankConstants

class TestConfigInitialization:

    def test_config_with_defaults(self):
        env_without_dapprank = {k: v for k, v in os.environ.items() if not k.startswith('DAPPRANK_') and k != 'GOOGLE_API_KEY'}
        with patch.dict('os.environ', env_without_dapprank, clear=True):
            config = Config()
            assert config.ipfs_url == DappRankConstants.DEFAULT_IPFS_URL
            assert config.llm_model == 'gemini/gemini-2.5-pro'
            assert config.llm_api_key is None
            assert config.use_mfs is False
            assert config.log_level == 'error'
            assert config.ai_requests_per_minute == 50

    def test_config_with_custom_values(self):
        config = Config(ipfs_url='http://node:5001', directory='/tmp/dapps', force=True)
        assert config.ipfs_url == 'http://node:5001'
        assert config.directory == '/tmp/dapps'
        assert config.force

    def test_config_from_env_variables(self):
        with patch.dict('os.environ', {'DAPPRANK_IPFS_URL': 'http://ipfs:5001', 'DAPPRANK_USE_MFS': 'true', 'DAPPRANK_AI_REQUESTS_PER_MINUTE': '10', 'DAPPRANK_LOG_LEVEL': 'debug'}):
            config = Config.from_env()
            assert config.ipfs_url == 'http://ipfs:5001'
            assert config.use_mfs is True
            assert config.ai_requests_per_minute == 10
            assert config.log_level == 'debug'

    def test_api_key_falls_back_to_google_key(self):
        env = {k: v for k, v in os.environ.items() if k != 'DAPPRANK_LLM_API_KEY'}
        env['GOOGLE_API_KEY'] = 'google-key'
        with patch.dict('os.environ', env, clear=True):
            assert Config().llm_api_key == 'google-key'

    def test_dapprank_api_key_takes_precedence(self):
        with patch.dict('os.environ', {'DAPPRANK_LLM_API_KEY': 'own-key', 'GOOGLE_API_KEY': 'google-key'}):
            assert Config().llm_api_key == 'own-key'

    def test_overrides_win_over_env(self):
        with patch.dict('os.environ', {'DAPPRANK_RPC_URL': 'http://env-rpc'}):
            assert Config.from_env(rpc_url='http://cli-rpc').rpc_url == 'http://cli-rpc'

class TestConfigFile:

    def test_from_file_loads_dotenv(self, tmp_path):
        env_file = tmp_path / 'dapprank.env'
        env_file.write_text('DAPPRANK_CACHE_DIR=/var/cache/dapprank\n')
        with patch.dict('os.environ', {}, clear=False):
            config = Config.from_file(env_file)
            assert config.cache_dir == '/var/cache/dapprank'

    def test_from_file_missing_file_uses_env(self, tmp_path):
        with patch.dict('os.environ', {'DAPPRANK_CACHE_DIR': './other-cache'}):
            config = Config.from_file(tmp_path / 'missing.env')
            assert config.cache_dir == './other-cache'

class TestEnvFlags:

    @pytest.mark.parametrize('value,expected', [('true', True), ('1', True), ('YES', True), ('off', False), ('0', False), ('maybe', None)])
    def test_read_env_flag(self, value, expected):
        with patch.dict('os.environ', {'DAPPRANK_TEST_FLAG': value}):
            assert read_env_flag('DAPPRANK_TEST_FLAG') is expected

    def test_unset_flag_is_none(self):
        with patch.dict('os.environ', {}, clear=True):
            assert read_env_flag('DAPPRANK_TEST_FLAG') is None

class TestConstants:

    def test_prompt_files_ship_with_package(self):
        prompts = DappRankConstants.get_prompts_path()
        assert (prompts / 'script_analysis_prompt.md').exists()
        assert (prompts / 'script_analysis_schema.json').exists()

    def test_report_version(self):
        assert DappRankConstants.ANALYSIS_VERSION == 4
