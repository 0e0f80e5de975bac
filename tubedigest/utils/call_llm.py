"""
LLM client utilities for summary generation.

This module provides a unified interface for calling the supported LLM
providers (OpenAI, Anthropic, Ollama) with a consistent result shape and a
categorized error hierarchy.
"""

import logging
import os
from typing import Dict, Any, Optional
from datetime import datetime, timezone
from dataclasses import dataclass
from enum import Enum

import anthropic
import ollama
import openai

logger = logging.getLogger(__name__)


class LLMProvider(Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    OLLAMA = "ollama"


@dataclass
class LLMConfig:
    """Configuration for LLM client."""
    provider: LLMProvider
    model: str
    api_key: Optional[str] = None
    max_tokens: int = 2000
    temperature: float = 0.3
    timeout: int = 60
    ollama_host: str = "http://localhost:11434"
    ollama_keep_alive: str = "5m"


class LLMError(Exception):
    """A provider call failed; the message is stored on the failed job."""

    error_code = "LLM_ERROR"

    def __init__(self, message: str, provider: str = ""):
        super().__init__(message)
        self.message = message
        self.provider = provider


class LLMAuthenticationError(LLMError):
    error_code = "AUTH_ERROR"

    def __init__(self, provider: str = ""):
        super().__init__(f"Authentication failed for {provider}, check the API key", provider)


class LLMRateLimitError(LLMError):
    error_code = "RATE_LIMIT"

    def __init__(self, provider: str = ""):
        super().__init__(f"Rate limit exceeded for {provider}", provider)


class LLMTimeoutError(LLMError):
    error_code = "TIMEOUT"

    def __init__(self, timeout: int = 60, provider: str = ""):
        super().__init__(f"{provider} did not answer within {timeout} seconds", provider)


class LLMServerError(LLMError):
    error_code = "SERVER_ERROR"

    def __init__(self, status_code: int = 500, provider: str = ""):
        super().__init__(f"{provider} returned a server error (HTTP {status_code})", provider)
        self.status_code = status_code


class LLMClientError(LLMError):
    """Bad request or missing configuration; not fixed by trying again."""
    error_code = "CLIENT_ERROR"

    def __init__(self, message: str = "Invalid request", provider: str = ""):
        super().__init__(f"Client error: {message}", provider)


class LLMClient:
    """
    Unified LLM client for calling different AI providers.

    Every provider returns the same dictionary shape from ``generate_text``.
    """

    def __init__(self, config: LLMConfig):
        self.config = config
        self.logger = logging.getLogger(f"{__name__}.{config.provider.value}")

        if config.provider == LLMProvider.OPENAI:
            api_key = config.api_key or os.getenv('OPENAI_API_KEY')
            if not api_key:
                raise LLMClientError("OpenAI API key not provided", "openai")
            self.client = openai.OpenAI(api_key=api_key, timeout=config.timeout)
        elif config.provider == LLMProvider.ANTHROPIC:
            api_key = config.api_key or os.getenv('ANTHROPIC_API_KEY')
            if not api_key:
                raise LLMClientError("Anthropic API key not provided", "anthropic")
            self.client = anthropic.Anthropic(api_key=api_key, timeout=config.timeout)
        elif config.provider == LLMProvider.OLLAMA:
            self.client = ollama.Client(host=config.ollama_host, timeout=config.timeout)
        else:
            raise LLMClientError(f"Unsupported provider: {config.provider}")

        self.logger.info(f"{config.provider.value} client initialized with model: {config.model}")

    def generate_text(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None
    ) -> Dict[str, Any]:
        """
        Generate text using the configured LLM.

        Args:
            prompt: The main prompt for text generation
            system_prompt: Optional system prompt for context
            max_tokens: Override default max tokens
            temperature: Override default temperature

        Returns:
            Dictionary containing generated text and metadata

        Raises:
            LLMError: If text generation fails
        """
        start_time = datetime.now(timezone.utc)
        max_tokens = max_tokens or self.config.max_tokens
        temperature = self.config.temperature if temperature is None else temperature

        try:
            if self.config.provider == LLMProvider.OPENAI:
                result = self._generate_openai(prompt, system_prompt, max_tokens, temperature)
            elif self.config.provider == LLMProvider.ANTHROPIC:
                result = self._generate_anthropic(prompt, system_prompt, max_tokens, temperature)
            else:
                result = self._generate_ollama(prompt, system_prompt, max_tokens, temperature)
        except LLMError:
            raise
        except Exception as e:
            self.logger.error(f"Text generation failed: {str(e)}")
            raise self._categorize_error(e) from e

        end_time = datetime.now(timezone.utc)
        return {
            'text': result['text'],
            'usage': result.get('usage', {}),
            'model': self.config.model,
            'provider': self.config.provider.value,
            'duration_seconds': (end_time - start_time).total_seconds(),
            'timestamp': end_time.isoformat(),
            'success': True
        }

    def _categorize_error(self, error: Exception) -> LLMError:
        """Map an SDK exception to the LLMError family, by type where possible."""
        provider = self.config.provider.value

        if isinstance(error, (openai.AuthenticationError, anthropic.AuthenticationError)):
            return LLMAuthenticationError(provider)
        if isinstance(error, (openai.RateLimitError, anthropic.RateLimitError)):
            return LLMRateLimitError(provider)
        if isinstance(error, (openai.APITimeoutError, anthropic.APITimeoutError)):
            return LLMTimeoutError(self.config.timeout, provider)
        if isinstance(error, (openai.InternalServerError, anthropic.InternalServerError)):
            return LLMServerError(error.status_code, provider)
        if isinstance(error, (openai.BadRequestError, anthropic.BadRequestError)):
            return LLMClientError(str(error), provider)
        if isinstance(error, ollama.ResponseError):
            if error.status_code >= 500:
                return LLMServerError(error.status_code, provider)
            return LLMClientError(error.error, provider)

        # Transport errors from any SDK
        error_str = str(error).lower()
        if "rate limit" in error_str:
            return LLMRateLimitError(provider)
        if "timeout" in error_str or "timed out" in error_str:
            return LLMTimeoutError(self.config.timeout, provider)
        return LLMError(f"LLM generation failed: {error}", provider)

    def _build_messages(self, prompt: str, system_prompt: Optional[str]) -> list:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return messages

    def _generate_openai(self, prompt, system_prompt, max_tokens, temperature) -> Dict[str, Any]:
        """Generate text using OpenAI API."""
        response = self.client.chat.completions.create(
            model=self.config.model,
            messages=self._build_messages(prompt, system_prompt),
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return {
            'text': response.choices[0].message.content or '',
            'usage': {
                'prompt_tokens': response.usage.prompt_tokens,
                'completion_tokens': response.usage.completion_tokens,
                'total_tokens': response.usage.total_tokens
            }
        }

    def _generate_anthropic(self, prompt, system_prompt, max_tokens, temperature) -> Dict[str, Any]:
        """Generate text using Anthropic API."""
        kwargs = {
            'model': self.config.model,
            'messages': [{"role": "user", "content": prompt}],
            'max_tokens': max_tokens,
            'temperature': temperature
        }
        if system_prompt:
            kwargs['system'] = system_prompt

        response = self.client.messages.create(**kwargs)
        return {
            'text': response.content[0].text,
            'usage': {
                'prompt_tokens': response.usage.input_tokens,
                'completion_tokens': response.usage.output_tokens,
                'total_tokens': response.usage.input_tokens + response.usage.output_tokens
            }
        }

    def _generate_ollama(self, prompt, system_prompt, max_tokens, temperature) -> Dict[str, Any]:
        """Generate text using a local Ollama server."""
        response = self.client.chat(
            model=self.config.model,
            messages=self._build_messages(prompt, system_prompt),
            # Ollama uses num_predict instead of max_tokens
            options={"temperature": temperature, "num_predict": max_tokens},
            keep_alive=self.config.ollama_keep_alive
        )
        text = response['message']['content']
        if not text:
            raise LLMError("Empty response from Ollama", "ollama")
        return {'text': text, 'usage': {}}


def create_llm_client(app_settings=None) -> LLMClient:
    """Build an LLM client for the configured default provider."""
    if app_settings is None:
        from ..config import settings as app_settings

    provider = LLMProvider(app_settings.default_llm_provider)
    models = {
        LLMProvider.OPENAI: (app_settings.openai_model, app_settings.openai_api_key),
        LLMProvider.ANTHROPIC: (app_settings.anthropic_model, app_settings.anthropic_api_key),
        LLMProvider.OLLAMA: (app_settings.ollama_model, None),
    }
    model, api_key = models[provider]

    return LLMClient(LLMConfig(
        provider=provider,
        model=model,
        api_key=api_key,
        max_tokens=app_settings.max_tokens,
        temperature=app_settings.temperature,
        timeout=app_settings.llm_timeout,
        ollama_host=app_settings.ollama_host,
        ollama_keep_alive=app_settings.ollama_keep_alive,
    ))
