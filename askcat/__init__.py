"""askcat: ask an LLM about the current line from Neovim."""

__version__ = "0.1.0"
