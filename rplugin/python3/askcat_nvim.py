"""Entry file scanned by Neovim's Python host (run :UpdateRemotePlugins after install)."""

from askcat.plugin import AskCatPlugin  # noqa: F401
