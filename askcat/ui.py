"""Floating response overlay pinned to the bottom of the editor."""

from __future__ import annotations

import logging

from askcat.config import WindowConfig

logger = logging.getLogger(__name__)

LOADING_TEXT = "🐱 Loading..."


class ResponseWindow:
    def __init__(self, nvim, config: WindowConfig | None = None):
        self.nvim = nvim
        self.config = config or WindowConfig()
        self.window = None
        self.buffer = None

    def is_open(self) -> bool:
        return bool(self.window) and self.nvim.api.win_is_valid(self.window)

    def close(self) -> None:
        if self.is_open():
            self.nvim.api.win_close(self.window, True)
        self.window = None

    def show_loading(self, prompt: str) -> None:
        self._open(f"{prompt}\n{LOADING_TEXT}")

    def show_response(self, text: str, prompt: str) -> None:
        self._open(f"{prompt}\n{text}")

    def _float_opts(self) -> dict:
        columns = self.nvim.options["columns"]
        lines = self.nvim.options["lines"]
        margin = self.config.margin
        height = self.config.height
        return {
            "relative": "editor",
            "width": max(columns - 2 * margin, 1),
            "height": height,
            "col": margin,
            "row": max(lines - height - 2, 0),
            "style": "minimal",
            "border": "none",
        }

    def _open(self, text: str) -> None:
        self.close()
        self.buffer = self.nvim.api.create_buf(False, True)
        self.nvim.api.buf_set_lines(self.buffer, 0, -1, False, text.split("\n"))
        self.window = self.nvim.api.open_win(self.buffer, True, self._float_opts())
        self.nvim.api.set_option_value("wrap", True, {"win": self.window.handle})
        self.nvim.api.set_option_value("linebreak", True, {"win": self.window.handle})
