"""Chat model behind the solver endpoint (Azure OpenAI through LangChain)."""

from typing import Any, Dict

from langchain_openai import AzureChatOpenAI

from ai_solver.config.settings import settings
from ai_solver.utils.logger import logger


def azure_endpoint(raw: str) -> str:
    """Azure expects the resource URL with exactly one trailing slash."""
    return raw.rstrip("/") + "/"


def solver_model_options() -> Dict[str, Any]:
    """
    Keyword arguments for the solver's chat model.

    The model always streams and reports token usage on its last chunk, which
    the engine turns into the cost line of its telemetry. Transient failures
    are retried by the OpenAI SDK up to LLM_MAX_RETRIES times; LLM_REQUEST_TIMEOUT
    and LLM_MAX_TOKENS are only passed on when configured.
    """
    options: Dict[str, Any] = {
        "azure_endpoint": azure_endpoint(settings.AZURE_OPENAI_ENDPOINT),
        "azure_deployment": settings.AZURE_OPENAI_DEPLOYMENT,
        "api_key": settings.OPENAI_API_KEY,
        "api_version": settings.AZURE_OPENAI_API_VERSION,
        "temperature": settings.LLM_TEMPERATURE,
        "max_retries": settings.LLM_MAX_RETRIES,
        "streaming": True,
        "stream_usage": True,
    }
    if settings.LLM_REQUEST_TIMEOUT is not None:
        options["timeout"] = settings.LLM_REQUEST_TIMEOUT
    if settings.LLM_MAX_TOKENS is not None:
        options["max_tokens"] = settings.LLM_MAX_TOKENS
    return options


def create_llm_client() -> AzureChatOpenAI:
    """
    Build the chat model the solver engine streams answers from.

    Raises:
        ConfigurationError: Endpoint, key or deployment is missing
    """
    settings.validate()
    options = solver_model_options()

    logger.bind(
        deployment=options["azure_deployment"],
        api_version=options["api_version"],
        max_retries=options["max_retries"],
    ).info(f"Solver model: {settings.MODEL_NAME} via deployment {options['azure_deployment']}")

    return AzureChatOpenAI(**options)
