import logging
from knowthepast.core.config import Settings, settings, validate_credentials
from knowthepast.core.logger import logs
from knowthepast.core.llm_providers import BaseLLMProvider, GeminiProvider

class LLMService:
    def __init__(self, config: Settings = settings):
        self.config = config
        self.provider = self._initialize_provider()
        logs.log(logging.INFO, f"🤖 LLM Provider initialized: {self.provider.get_provider_name()}")

    def _initialize_provider(self) -> BaseLLMProvider:
        """Initialize the generative provider, refusing to start without credentials"""
        validate_credentials(self.config)
        return GeminiProvider(
            api_key=self.config.GEMINI_API_KEY,
            text_model=self.config.GEMINI_TEXT_MODEL,
            image_model=self.config.GEMINI_IMAGE_MODEL,
            base_url=self.config.GEMINI_BASE_URL
        )

_llm_client: LLMService | None = None

def get_llm_client() -> LLMService:
    """Lazily built singleton; raises ConfigurationError when credentials are missing."""
    global _llm_client
    if _llm_client is None:
        _llm_client = LLMService()
    return _llm_client

# Dependency for FastAPI
def get_provider() -> BaseLLMProvider:
    return get_llm_client().provider
