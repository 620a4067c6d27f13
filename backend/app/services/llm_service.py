import logging

# LangChain Imports
from langchain_ollama import ChatOllama
from langchain_openai import ChatOpenAI

# Configuration
from config import LLM_PROVIDER, LLM_API_KEY, LLM_MODEL as OVERRIDE_MODEL, OLLAMA_URL

logger = logging.getLogger(__name__)

# Determine Model Name based on Provider
# If LLM_MODEL is set in env, it overrides everything.
DEFAULT_MODELS = {
    "openai": "gpt-4o",
    "openrouter": "openai/gpt-4o",
    "ollama": "llama3.1",
}

MODEL_NAME = OVERRIDE_MODEL if OVERRIDE_MODEL else DEFAULT_MODELS.get(LLM_PROVIDER, "gpt-4o")

# Base URLs for paid providers
PROVIDER_URLS = {
    "openrouter": "https://openrouter.ai/api/v1",
    "openai": None  # Uses default OpenAI URL
}


def get_llm(temperature: float = 0.7, max_tokens: int = 2000):
    """
    Factory function to get a configured LangChain Chat Model instance.
    Supports: OpenAI, OpenRouter, Ollama (Local)
    """

    # 1. OpenAI Compatible (OpenAI, OpenRouter)
    if LLM_PROVIDER in ["openai", "openrouter"]:
        if not LLM_API_KEY:
            # Let the provider call fail so the missing key is visible to the operator
            logger.critical(f"[LLM Service] Missing API Key for provider {LLM_PROVIDER}")

        return ChatOpenAI(
            model=MODEL_NAME,
            api_key=LLM_API_KEY,
            base_url=PROVIDER_URLS.get(LLM_PROVIDER),
            temperature=temperature,
            max_tokens=max_tokens,
            streaming=True,
            timeout=60.0
        )

    # 2. Ollama (Local)
    if LLM_PROVIDER != "ollama":
        logger.warning(f"[LLM Service] Unknown provider '{LLM_PROVIDER}'. Defaulting to Ollama.")

    return ChatOllama(
        base_url=OLLAMA_URL,
        model=MODEL_NAME,
        temperature=temperature,
        num_predict=max_tokens,
    )
