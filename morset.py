"""GUI front-end for Morset (Tkinter application).

This module parses the command line, builds the App window with its writing
and listening tabs and wires them to the engine, the listening session and
the audio output. Keying logic lives in morset_engine; this module only
forwards key events and elapsed time to it.
"""
import argparse
import logging
import os
import sys
import tkinter as tk
from tkinter import ttk
from typing import List, Optional

from morset_audio import PhrasePlayer, ToneAudio, play_buffer
from morset_config import Settings, load_config, save_config
from morset_encoder import EncodedPhrase, PhraseSynth
from morset_engine import MorsetEngine
from morset_keyer import KeyerMode
from morset_listening import ListeningSession
from morset_tabs import ListeningTab, TrainerTabProtocol, WritingTab
from morset_utils import MAX_FREQUENCY, MAX_VOLUME, MAX_WPM, MIN_FREQUENCY, MIN_VOLUME, MIN_WPM

logger = logging.getLogger(__name__)

LEAD_IN_MS = 200


def get_default_log_dir() -> str:
    """Get platform-appropriate default directory for listening logs."""
    if sys.platform == 'win32':
        # Windows: Use AppData\Local
        base = os.environ.get('LOCALAPPDATA', os.path.expanduser('~'))
        return os.path.join(base, 'Morset', 'logs')
    elif sys.platform == 'darwin':
        # macOS: Use ~/Library/Application Support
        return os.path.join(os.path.expanduser('~'), 'Library', 'Application Support', 'Morset', 'logs')
    else:
        # Linux/Unix: Use XDG_DATA_HOME or ~/.local/share
        xdg_data = os.environ.get('XDG_DATA_HOME', os.path.join(os.path.expanduser('~'), '.local', 'share'))
        return os.path.join(xdg_data, 'morset', 'logs')


class App(tk.Tk):
    """Main application window with writing and listening tabs."""

    def __init__(self, settings: Settings):
        super().__init__()
        self.title("MORSET")
        self.geometry("1280x720")
        self.resizable(True, True)

        # Set up window close handler to stop audio and save settings
        self.protocol("WM_DELETE_WINDOW", self._on_closing)

        self.settings = settings
        self.tone: Optional[ToneAudio] = None
        if not settings.silent:
            self.tone = ToneAudio(settings.frequency, settings.volume * 0.01)
            self.tone.start()
        self._player: Optional[PhrasePlayer] = None

        self.engine = MorsetEngine(settings.wpm, settings.keyer_mode, settings.frequency,
                                   settings.volume, audio=self.tone)
        self.session = ListeningSession(
            wpm=settings.listening_wpm,
            farnsworth=settings.farnsworth,
            words_per_phrase=settings.words_per_phrase,
            log_path=os.path.join(get_default_log_dir(), "listening.csv"),
            player=self._play_phrase,
        )

        self._build_ui()

    def _build_ui(self):
        """Construct the tabbed UI interface."""
        self.notebook = ttk.Notebook(self)
        self.notebook.pack(fill="both", expand=True, padx=4, pady=4)

        self.writing_tab = WritingTab(self.notebook, self.engine, self._save_params)
        self.listening_tab = ListeningTab(self.notebook, self.session, self._save_params)
        self.notebook.add(self.writing_tab, text="Writing")
        self.notebook.add(self.listening_tab, text="Listening")
        self.tabs: List[TrainerTabProtocol] = [self.writing_tab, self.listening_tab]
        self.active_tab: Optional[TrainerTabProtocol] = None
        self._load_params()

        self.notebook.bind("<<NotebookTabChanged>>", self._on_tab_changed)

    def _on_tab_changed(self, _event=None):
        tab = self.nametowidget(self.notebook.select())
        if tab is self.active_tab:
            return
        if self.active_tab is not None:
            self.active_tab.on_hide()
        self.active_tab = tab
        tab.on_show()

    def _play_phrase(self, encoded: EncodedPhrase):
        """Render and play a listening phrase with the sidetone settings."""
        if self.settings.silent:
            return
        synth = PhraseSynth(self.engine.frequency, self.engine.volume)
        audio = synth.render(encoded, lead_in=LEAD_IN_MS)
        self._player = play_buffer(audio, self._player)

    def _load_params(self):
        """Push the startup settings into every tab."""
        params = self.settings.to_dict()
        for tab in self.tabs:
            tab.set_params(params)

    def _save_params(self):
        """Save current parameters from all tabs to config file."""
        config = self.settings.to_dict()
        for tab in self.tabs:
            config.update(tab.get_params())
        config.pop('silent', None)
        self.settings = Settings.from_dict({**config, 'silent': self.settings.silent})
        save_config(config)

    def _on_closing(self):
        """Clean up and close the application gracefully."""
        self._save_params()
        if self.active_tab is not None:
            self.active_tab.on_hide()
        if self._player is not None:
            self._player.stop()
        if self.tone is not None:
            self.tone.close()
        self.destroy()


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="morset", description="Morse code sending and listening trainer.")
    p.add_argument("--wpm", type=int, help=f"Sending speed in words per minute ({MIN_WPM}-{MAX_WPM})")
    p.add_argument("--frequency", type=int, help=f"Tone frequency in Hz ({MIN_FREQUENCY}-{MAX_FREQUENCY})")
    p.add_argument("--volume", type=int, help=f"Tone volume ({MIN_VOLUME}-{MAX_VOLUME})")
    p.add_argument("--silent", action="store_true", help="Disable all audio output")
    p.add_argument("--paddle-mode", choices=[m.value for m in KeyerMode], help="Keyer mode")
    p.add_argument("--farnsworth", action="store_true", help="Farnsworth spacing for listening practice")
    p.add_argument("--log-level", default="info",
                   choices=["debug", "info", "warning", "error"], help="Set logging level for the app")
    return p


def settings_from_args(args: argparse.Namespace, saved: dict) -> Settings:
    """Merge saved settings with command-line overrides."""
    data = dict(saved)
    for name in ("wpm", "frequency", "volume"):
        value = getattr(args, name)
        if value is not None:
            data[name] = value
    if args.paddle_mode is not None:
        data["keyer_mode"] = args.paddle_mode
    if args.farnsworth:
        data["farnsworth"] = True
    data["silent"] = args.silent
    return Settings.from_dict(data)


def main(argv: Optional[List[str]] = None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper()),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    settings = settings_from_args(args, load_config())
    logger.info("Starting MORSET at %d wpm, %s keyer", settings.wpm, settings.keyer_mode.label)
    app = App(settings)
    app.mainloop()


if __name__ == '__main__':
    main()
