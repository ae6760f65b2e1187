"""Generative backends."""

from .base import Generator, GeneratorFn, bind_generator
from .http import HTTPClient, OpenAICompatibleGenerator

__all__ = [
    "Generator",
    "GeneratorFn",
    "bind_generator",
    "HTTPClient",
    "OpenAICompatibleGenerator",
]
