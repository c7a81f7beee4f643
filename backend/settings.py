import logging
import os

from dotenv import load_dotenv

from errors import ConfigurationError

logger = logging.getLogger(__name__)


class Settings:
    # Together's OpenAI-compatible API
    DEFAULT_LLM_BASE_URL = "https://api.together.xyz/v1"
    DEFAULT_GATEWAY_URL = "http://localhost:8000/api/together"
    DEFAULT_MODEL = "mistralai/Mixtral-8x7B-Instruct-v0.1"
    DEFAULT_DB_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), "../data/chat_history.db"))

    def __init__(
        self,
        api_key: str = "",
        llm_base_url: str = DEFAULT_LLM_BASE_URL,
        gateway_url: str = DEFAULT_GATEWAY_URL,
        model: str = DEFAULT_MODEL,
        database_path: str = DEFAULT_DB_PATH,
        log_level: str = "INFO",
    ):
        self._api_key = api_key.strip()
        self._llm_base_url = llm_base_url.rstrip("/")
        self._gateway_url = gateway_url
        self._model = model
        self._database_path = database_path
        self._log_level = log_level.upper()

    def get_api_key(self) -> str:
        return self._api_key

    def get_llm_base_url(self) -> str:
        """Returns the provider base URL (e.g. 'https://api.together.xyz/v1')."""
        return self._llm_base_url

    def get_completions_url(self) -> str:
        return f"{self.get_llm_base_url()}/chat/completions"

    def get_gateway_url(self) -> str:
        """Returns the URL of the /api/together route the UI posts prompts to."""
        return self._gateway_url

    def get_model(self) -> str:
        return self._model

    def get_database_path(self) -> str:
        return self._database_path

    def get_log_level(self) -> str:
        return self._log_level


def load_settings(require_api_key: bool = True) -> Settings:
    """Build Settings from the environment (and a .env file, if present).

    The gateway process must call this with ``require_api_key=True`` once at
    startup so a missing credential stops it before any request is served.
    """
    load_dotenv()
    api_key = os.environ.get("TOGETHER_API_KEY", "")
    if require_api_key and not api_key.strip():
        logger.error("TOGETHER_API_KEY is not set")
        raise ConfigurationError("Missing together env var: TOGETHER_API_KEY")

    return Settings(
        api_key=api_key,
        llm_base_url=os.environ.get("LLM_BASE_URL", Settings.DEFAULT_LLM_BASE_URL),
        gateway_url=os.environ.get("GATEWAY_URL", Settings.DEFAULT_GATEWAY_URL),
        model=os.environ.get("CHAT_MODEL", Settings.DEFAULT_MODEL),
        database_path=os.environ.get("DATABASE_PATH", Settings.DEFAULT_DB_PATH),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
    )


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
