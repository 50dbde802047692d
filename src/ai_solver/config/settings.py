"""Configuration settings for the AI solver."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from ai_solver.exceptions import ConfigurationError
from ai_solver.utils.logger import logger

# Load environment variables from .env file
load_dotenv()
logger.debug("Environment variables loaded from .env file")


def _optional_float(name: str) -> Optional[float]:
    value = os.getenv(name, "").strip()
    return float(value) if value else None


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name, "").strip()
    return int(value) if value else None


class Settings:
    """Application settings loaded from environment variables."""

    # Solver endpoint (client side)
    SOLVER_BASE_URL: str = os.getenv("SOLVER_BASE_URL", "http://localhost:8000")
    SOLVER_ENDPOINT_PATH: str = os.getenv("SOLVER_ENDPOINT_PATH", "/api/praggo/solve")
    SYLLABUS_ENDPOINT_PATH: str = os.getenv("SYLLABUS_ENDPOINT_PATH", "/api/syllabus/hierarchy")
    SOLVER_CONNECT_TIMEOUT: float = float(os.getenv("SOLVER_CONNECT_TIMEOUT", "10"))
    # No read deadline unless one is configured
    SOLVER_READ_TIMEOUT: Optional[float] = _optional_float("SOLVER_READ_TIMEOUT")

    # Syllabus hierarchy served by the solver API
    SYLLABUS_PATH: str = os.getenv(
        "SYLLABUS_PATH", str(Path(__file__).resolve().parent.parent / "syllabus" / "syllabus.json")
    )

    # Azure OpenAI Configuration (server side)
    AZURE_OPENAI_ENDPOINT: str = os.getenv("AZURE_OPENAI_ENDPOINT", "")
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    AZURE_OPENAI_DEPLOYMENT: str = os.getenv("AZURE_OPENAI_DEPLOYMENT", "")
    AZURE_OPENAI_API_VERSION: str = os.getenv("AZURE_OPENAI_API_VERSION", "2024-02-15-preview")
    MODEL_NAME: str = os.getenv("MODEL_NAME", "gpt-4o")  # For display/telemetry purposes
    LLM_TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", "0.7"))
    LLM_MAX_RETRIES: int = int(os.getenv("LLM_MAX_RETRIES", "2"))
    LLM_REQUEST_TIMEOUT: Optional[float] = _optional_float("LLM_REQUEST_TIMEOUT")
    LLM_MAX_TOKENS: Optional[int] = _optional_int("LLM_MAX_TOKENS")

    # GPT-4o Pricing Constants (per 1M tokens)
    GPT4O_INPUT_PRICE_PER_1M: float = 2.50  # USD per 1M input tokens
    GPT4O_OUTPUT_PRICE_PER_1M: float = 10.00  # USD per 1M output tokens

    # Structured logging
    ENABLE_CORRELATION_IDS: bool = os.getenv("ENABLE_CORRELATION_IDS", "true").lower() == "true"

    # Listen addresses
    SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
    SERVER_PORT: int = int(os.getenv("SERVER_PORT", "8000"))
    UI_HOST: str = os.getenv("UI_HOST", "0.0.0.0")
    UI_PORT: int = int(os.getenv("UI_PORT", "7860"))

    @classmethod
    def validate(cls) -> None:
        """Validate that the LLM settings required by the solver server are set."""
        logger.debug("Validating configuration settings")

        if not cls.AZURE_OPENAI_ENDPOINT:
            logger.error("AZURE_OPENAI_ENDPOINT is not set")
            raise ConfigurationError(
                "AZURE_OPENAI_ENDPOINT environment variable is required. "
                "Set it in your .env file or environment. "
                "Format: https://<your-resource-name>.openai.azure.com/"
            )
        if not cls.OPENAI_API_KEY:
            logger.error("OPENAI_API_KEY is not set")
            raise ConfigurationError(
                "OPENAI_API_KEY environment variable is required. "
                "Set it in your .env file or environment."
            )
        if not cls.AZURE_OPENAI_DEPLOYMENT:
            logger.error("AZURE_OPENAI_DEPLOYMENT is not set")
            raise ConfigurationError(
                "AZURE_OPENAI_DEPLOYMENT environment variable is required. "
                "Set it in your .env file or environment. "
                "This should be the name of your Azure OpenAI deployment."
            )

        logger.info("Configuration validation successful")
        logger.debug(
            f"Configuration: endpoint={cls.AZURE_OPENAI_ENDPOINT[:50]}..., "
            f"deployment={cls.AZURE_OPENAI_DEPLOYMENT}, "
            f"api_version={cls.AZURE_OPENAI_API_VERSION}, "
            f"model={cls.MODEL_NAME}"
        )

    @classmethod
    def validate_client(cls) -> None:
        """Validate the settings the chat panel needs to reach the solver."""
        if not cls.SOLVER_BASE_URL:
            logger.error("SOLVER_BASE_URL is not set")
            raise ConfigurationError(
                "SOLVER_BASE_URL environment variable is required. "
                "Example: http://localhost:8000"
            )
        if not cls.SOLVER_ENDPOINT_PATH.startswith("/"):
            raise ConfigurationError(
                f"SOLVER_ENDPOINT_PATH must start with '/': {cls.SOLVER_ENDPOINT_PATH!r}"
            )
        logger.debug(f"Client configuration: base_url={cls.SOLVER_BASE_URL}")

    @classmethod
    def calculate_cost(
        cls, input_tokens: int, output_tokens: int, model_name: Optional[str] = None
    ) -> float:
        """
        Calculate the cost in USD for a given token usage.

        Args:
            input_tokens: Number of input/prompt tokens
            output_tokens: Number of output/completion tokens
            model_name: Optional model name (currently only GPT-4o supported)

        Returns:
            Total cost in USD
        """
        input_cost = (input_tokens / 1_000_000) * cls.GPT4O_INPUT_PRICE_PER_1M
        output_cost = (output_tokens / 1_000_000) * cls.GPT4O_OUTPUT_PRICE_PER_1M
        return input_cost + output_cost


# Global settings instance
settings = Settings()
