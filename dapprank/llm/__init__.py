from .client import LLMClassifier, PromptBuilder, ProviderConfig, ResponseParser, classify_llm_error, create_prompt_hash
from .rate_limiter import RateLimiter
from .retry import RetryPolicy, RetryState

__all__ = ['LLMClassifier', 'PromptBuilder', 'ProviderConfig', 'ResponseParser', 'classify_llm_error', 'create_prompt_hash', 'RateLimiter', 'RetryPolicy', 'RetryState']
