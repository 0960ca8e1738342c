__all__ = [
    "models",
    "prompts",
    "llm_provider",
    "logging",
]
