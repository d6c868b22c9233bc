"""askcat: Neovim remote plugin.

Asks an LLM about the current line or visual selection and shows the answer
in a floating overlay. Call ``AskCatSetup({...})`` from init.lua/init.vim,
then use the keymaps or the :AskCat* commands.
"""

from __future__ import annotations

import logging

import pynvim

from askcat.config import AskCatConfig, configure, reload_config
from askcat.coordinator import Coordinator
from askcat.logging_config import setup_logging
from askcat.runtime import clean_prompt
from askcat.ui import ResponseWindow

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 40


def _char_index(line: str, byte_col: int) -> int:
    """Index of the character that contains 1-based byte column ``byte_col``."""
    return len(line.encode()[:max(byte_col - 1, 0)].decode(errors="ignore"))


@pynvim.plugin
class AskCatPlugin:
    def __init__(self, nvim: pynvim.Nvim):
        self.nvim = nvim
        self.config = AskCatConfig()
        self.window = ResponseWindow(nvim, self.config.window)
        self._mapped: list[tuple[str, str]] = []
        # on_loading fires inside submit(), i.e. already in an editor handler;
        # results come back from the loop and are handed to the editor.
        self.coordinator = Coordinator(
            on_loading=self._on_loading,
            on_result=self._deferred(self._on_result),
            on_error=self._deferred(self._on_error),
            loop=nvim.loop,
            curl=self.config.curl,
        )

    # ------------------------------------------------------------------
    # Editor helpers
    # ------------------------------------------------------------------

    def _deferred(self, fn):
        def call(*args):
            self.nvim.async_call(fn, *args)

        call.__name__ = fn.__name__
        return call

    def _notify(self, message: str, level: str = "INFO") -> None:
        self.nvim.exec_lua(
            "local msg, level = ...; vim.notify(msg, vim.log.levels[level])",
            message,
            level,
        )

    def _current_line(self) -> str:
        return self.nvim.current.line

    def _visual_selection(self) -> str:
        _, start_line, start_col, _ = self.nvim.call("getpos", "'<")
        _, end_line, end_col, _ = self.nvim.call("getpos", "'>")
        lines = self.nvim.api.buf_get_lines(0, start_line - 1, end_line, False)
        if not lines:
            return ""
        if self.nvim.call("visualmode") == "v":
            # Trim the end first so the start offset stays valid on a single line.
            lines[-1] = lines[-1][:_char_index(lines[-1], end_col) + 1]
            lines[0] = lines[0][_char_index(lines[0], start_col):]
        return "\n".join(lines)

    def _apply(self, config: AskCatConfig) -> None:
        self.config = config
        self.window.config = config.window
        self.coordinator.curl = config.curl
        setup_logging(config.log_level, config.log_file)

    def _register_keymaps(self) -> None:
        for mode, lhs in self._mapped:
            try:
                self.nvim.api.del_keymap(mode, lhs)
            except pynvim.NvimError as e:
                logger.debug(f"Keymap {mode} {lhs} already gone: {e}")
        keys = self.config.keymaps
        self._mapped = [("n", keys.ask), ("x", keys.ask), ("n", keys.cancel), ("x", keys.cancel)]
        opts = {"noremap": True, "silent": True}
        self.nvim.api.set_keymap(
            "n", keys.ask, "<Cmd>AskCatToggle<CR>", {**opts, "desc": "Ask AI / toggle AI window"}
        )
        self.nvim.api.set_keymap(
            "x", keys.ask, ":<C-u>AskCatVisual<CR>", {**opts, "desc": "Ask AI about selection"}
        )
        for mode in ("n", "x"):
            self.nvim.api.set_keymap(
                mode, keys.cancel, "<Cmd>AskCatCancel<CR>", {**opts, "desc": "Cancel AI query"}
            )

    # ------------------------------------------------------------------
    # Coordinator callbacks
    # ------------------------------------------------------------------

    def _on_loading(self, prompt: str) -> None:
        self.window.show_loading(prompt)

    def _on_result(self, text: str, prompt: str) -> None:
        self.window.show_response(text, prompt)

    def _on_error(self, message: str, prompt: str) -> None:
        self.window.show_response(message, prompt)
        self._notify("🐱E...", "ERROR")

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def ask(self, prompt: str) -> None:
        # An empty prompt leaves a pending request alone.
        if not clean_prompt(prompt):
            self._notify("🐱 Empty", "WARN")
            return
        if self.coordinator.pending:
            self._notify("🐱 Replacing previous query...", "INFO")
        self.coordinator.submit(prompt, self.config.provider)
        self._notify("🐱...", "INFO")

    def toggle(self) -> None:
        if self.window.is_open():
            self.window.close()
            return

        if self.coordinator.pending:
            preview = (self.coordinator.current_prompt or "")[:PREVIEW_CHARS]
            self._notify(
                f"🐱 Processing: {preview}...\n  Press {self.config.keymaps.cancel} to cancel",
                "INFO",
            )
            return

        if self.coordinator.last_response is not None:
            self.window.show_response(self.coordinator.last_response, self.coordinator.last_prompt)
        else:
            self.ask(self._current_line())

    def cancel(self) -> bool:
        if not self.coordinator.cancel():
            self._notify("🐱 Nothing to cancel", "INFO")
            return False
        self.window.close()
        self._notify("🐱 Query cancelled!", "INFO")
        return True

    # ------------------------------------------------------------------
    # Exported functions and commands
    # ------------------------------------------------------------------

    @pynvim.function("AskCatSetup", sync=True)
    def setup(self, args):
        options = args[0] if args and isinstance(args[0], dict) else {}
        try:
            config = configure(options)
        except (ValueError, FileNotFoundError) as e:
            logger.error(f"Setup failed: {e}")
            self._notify(f"🐱 askcat setup failed: {e}", "ERROR")
            return
        self._apply(config)
        self._register_keymaps()
        keys = self.config.keymaps
        self.nvim.out_write(f"🐱 askcat loaded: {keys.ask} to ask, {keys.cancel} to cancel\n")

    @pynvim.command("AskCat", nargs="*")
    def ask_command(self, args):
        self.ask(" ".join(args) if args else self._current_line())

    @pynvim.command("AskCatVisual", nargs="0")
    def ask_visual_command(self, args):
        self.ask(self._visual_selection())

    @pynvim.command("AskCatToggle", nargs="0")
    def toggle_command(self, args):
        self.toggle()

    @pynvim.command("AskCatCancel", nargs="0")
    def cancel_command(self, args):
        self.cancel()

    @pynvim.command("AskCatReload", nargs="0")
    def reload_command(self, args):
        try:
            config = reload_config()
        except (RuntimeError, ValueError, FileNotFoundError) as e:
            self._notify(f"🐱 Reload failed: {e}", "ERROR")
            return
        self._apply(config)
        self._register_keymaps()
        self._notify("🐱 Config reloaded", "INFO")

    @pynvim.shutdown_hook
    def shutdown(self):
        self.coordinator.close()
