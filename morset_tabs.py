"""Tab classes for the Morset writing and listening screens."""
from __future__ import annotations
import logging
import time
import tkinter as tk
from tkinter import ttk
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable

from morset_engine import InputEvent, Key, MorsetEngine
from morset_keyer import KeyerMode
from morset_listening import ListeningSession
from morset_ticker import MAX_TICK
from morset_utils import (MAX_FREQUENCY, MAX_VOLUME, MAX_WPM, MIN_FREQUENCY, MIN_VOLUME, MIN_WPM, MORSE_MAP,
                          PROSIGNS)

logger = logging.getLogger(__name__)

FRAME_MS = 10
FREQUENCY_STEP = 50
VOLUME_STEP = 5

# Tk keysyms for the keys driving the engine
_KEYSYMS = {'space': Key.STRAIGHT, 'bracketleft': Key.DOT, 'bracketright': Key.DASH}


def tick_bar(ticks: int) -> str:
    """Render elapsed ticks as '+' marks out of MAX_TICK."""
    return ''.join('+' if i <= ticks else '-' for i in range(1, MAX_TICK + 1))


def cheat_sheet_lines() -> List[str]:
    lines = [f"{ch}: {code}" for ch, code in MORSE_MAP.items()]
    lines += [f"<{name}>: {code}" for name, (code, _) in PROSIGNS.items()]
    return lines


@runtime_checkable
class TrainerTabProtocol(Protocol):
    """Interface the App expects from each tab."""
    mode_name: str

    def on_show(self) -> None: ...
    def on_hide(self) -> None: ...
    def get_params(self) -> Dict[str, Any]: ...
    def set_params(self, params: Dict[str, Any]) -> None: ...


class WritingTab(ttk.Frame):
    """Sending practice: key Morse and watch it decode."""

    def __init__(self, parent, engine: MorsetEngine, on_settings_changed: Callable[[], None]):
        super().__init__(parent)
        self.mode_name = "writing"
        self.engine = engine
        self.on_settings_changed = on_settings_changed
        self._events: List[InputEvent] = []
        self._last_frame = time.perf_counter()
        self._frame_job = None
        self._cheat_window: Optional[tk.Toplevel] = None

        self.wpm = tk.IntVar(value=engine.wpm)
        self.frequency = tk.IntVar(value=engine.frequency)
        self.volume = tk.IntVar(value=engine.volume)
        self.keyer_mode = tk.StringVar(value=engine.keyer_mode.label)

        self._build_ui()

    def _build_ui(self):
        self.ticks_label = ttk.Label(self, text=tick_bar(0), font=('', 25), anchor="center")
        self.ticks_label.pack(fill="x", padx=8, pady=8)

        self.text_label = ttk.Label(self, text="|", font=('', 32), anchor="center", wraplength=900, justify="center")
        self.text_label.pack(fill="both", expand=True, padx=8, pady=8)

        bottom = ttk.Frame(self)
        bottom.pack(fill="x", padx=8, pady=8)

        controls = ttk.LabelFrame(bottom, text="Controls")
        controls.pack(side="left", fill="y", padx=4)
        self.controls_label = ttk.Label(controls, justify="left", font=('TkFixedFont', 10))
        self.controls_label.pack(padx=8, pady=8, anchor="w")

        settings = ttk.LabelFrame(bottom, text="Settings")
        settings.pack(side="left", fill="both", expand=True, padx=4)

        ttk.Label(settings, text="WPM:").grid(row=0, column=0, sticky="e", padx=4, pady=4)
        ttk.Scale(settings, from_=MIN_WPM, to=MAX_WPM, orient="horizontal", variable=self.wpm,
                  command=lambda _v: self._apply_wpm()).grid(row=0, column=1, sticky="ew", padx=4)
        ttk.Label(settings, textvariable=self.wpm, width=4).grid(row=0, column=2, sticky="w")

        ttk.Label(settings, text="Frequency:").grid(row=1, column=0, sticky="e", padx=4, pady=4)
        self.frequency_box = ttk.Spinbox(settings, from_=MIN_FREQUENCY, to=MAX_FREQUENCY, increment=FREQUENCY_STEP,
                                         textvariable=self.frequency, width=7, command=self._apply_frequency)
        self.frequency_box.grid(row=1, column=1, sticky="w", padx=4)

        ttk.Label(settings, text="Volume:").grid(row=2, column=0, sticky="e", padx=4, pady=4)
        self.volume_box = ttk.Spinbox(settings, from_=MIN_VOLUME, to=MAX_VOLUME, increment=VOLUME_STEP,
                                      textvariable=self.volume, width=7, command=self._apply_volume)
        self.volume_box.grid(row=2, column=1, sticky="w", padx=4)

        ttk.Label(settings, text="Keyer Mode:").grid(row=3, column=0, sticky="e", padx=4, pady=4)
        mode_box = ttk.Combobox(settings, textvariable=self.keyer_mode, state="readonly", width=10,
                                values=[m.label for m in KeyerMode])
        mode_box.grid(row=3, column=1, sticky="w", padx=4)
        mode_box.bind("<<ComboboxSelected>>", lambda _e: self._apply_mode())

        ttk.Button(settings, text="Cheat sheet", command=self.toggle_cheat_sheet).grid(row=4, column=1, sticky="w", padx=4, pady=4)
        settings.columnconfigure(1, weight=1)

        self._refresh_controls()

    def _refresh_controls(self):
        controls = [
            ("Bksp", "Clear text"),
            ("F1", "Decrease WPM"),
            ("F2", "Increase WPM"),
            ("F3", "Decrease frequency"),
            ("F4", "Increase frequency"),
            ("F5", "Decrease volume"),
            ("F6", "Increase volume"),
            ("M", "Switch keyer mode"),
            ("C", "Toggle cheat sheet"),
        ]
        if self.engine.keyer_mode.is_iambic:
            controls += [("[", "Send dit"), ("]", "Send dash")]
        else:
            controls.append(("Space", "Send Morse code"))
        self.controls_label.config(text="\n".join(f"{k:<6} - {v}" for k, v in controls))

    # ---- TrainerTabProtocol ----
    def on_show(self) -> None:
        top = self.winfo_toplevel()
        top.bind("<KeyPress>", self._on_key_press)
        top.bind("<KeyRelease>", self._on_key_release)
        self._last_frame = time.perf_counter()
        if self._frame_job is None:
            self._frame_job = self.after(FRAME_MS, self._frame)

    def on_hide(self) -> None:
        top = self.winfo_toplevel()
        top.unbind("<KeyPress>")
        top.unbind("<KeyRelease>")
        if self._frame_job is not None:
            self.after_cancel(self._frame_job)
            self._frame_job = None
        # Release anything still held so the tone does not hang
        self._events = [InputEvent(key, False) for key in Key]
        self.engine.advance(0.0, self._events)
        self._events = []

    def get_params(self) -> Dict[str, Any]:
        return {
            'wpm': self.engine.wpm,
            'frequency': self.engine.frequency,
            'volume': self.engine.volume,
            'keyer_mode': self.engine.keyer_mode.value,
        }

    def set_params(self, params: Dict[str, Any]) -> None:
        if 'wpm' in params:
            self.wpm.set(self.engine.set_wpm(params['wpm']))
        if 'frequency' in params:
            self.frequency.set(self.engine.set_frequency(params['frequency']))
        if 'volume' in params:
            self.volume.set(self.engine.set_volume(params['volume']))
        if 'keyer_mode' in params:
            self.engine.set_keyer_mode(KeyerMode.parse(params['keyer_mode']))
            self.keyer_mode.set(self.engine.keyer_mode.label)
            self._refresh_controls()

    # ---- input ----
    def _queue(self, key: Key, pressed: bool):
        # X11 auto-repeat sends release/press pairs; a press right after a
        # pending release of the same key cancels both
        if pressed and self._events and self._events[-1].key is key and not self._events[-1].pressed:
            self._events.pop()
            return
        self._events.append(InputEvent(key, pressed))

    def _on_key_press(self, event):
        key = _KEYSYMS.get(event.keysym)
        if key is not None:
            self._queue(key, True)
            return "break"
        handlers = {
            'BackSpace': self.engine.clear,
            'F1': lambda: self._step_wpm(-1),
            'F2': lambda: self._step_wpm(1),
            'F3': lambda: self._step_frequency(-FREQUENCY_STEP),
            'F4': lambda: self._step_frequency(FREQUENCY_STEP),
            'F5': lambda: self._step_volume(-VOLUME_STEP),
            'F6': lambda: self._step_volume(VOLUME_STEP),
            'm': self._cycle_mode,
            'M': self._cycle_mode,
            'c': self.toggle_cheat_sheet,
            'C': self.toggle_cheat_sheet,
        }
        handler = handlers.get(event.keysym)
        if handler is not None:
            handler()
            return "break"
        return None

    def _on_key_release(self, event):
        key = _KEYSYMS.get(event.keysym)
        if key is not None:
            self._queue(key, False)
            return "break"
        return None

    # ---- settings ----
    def _step_wpm(self, step: int):
        self.wpm.set(self.engine.wpm + step)
        self._apply_wpm()

    def _step_frequency(self, step: int):
        self.frequency.set(self.engine.frequency + step)
        self._apply_frequency()

    def _step_volume(self, step: int):
        self.volume.set(self.engine.volume + step)
        self._apply_volume()

    def _apply_wpm(self):
        try:
            wpm = int(float(self.wpm.get()))
        except (tk.TclError, ValueError):
            return
        if wpm != self.engine.wpm:
            self.wpm.set(self.engine.set_wpm(wpm))
            self.on_settings_changed()

    def _apply_frequency(self):
        try:
            self.frequency.set(self.engine.set_frequency(self.frequency.get()))
        except tk.TclError:
            return
        self.on_settings_changed()

    def _apply_volume(self):
        try:
            self.volume.set(self.engine.set_volume(self.volume.get()))
        except tk.TclError:
            return
        self.on_settings_changed()

    def _apply_mode(self):
        labels = {m.label: m for m in KeyerMode}
        self.engine.set_keyer_mode(labels[self.keyer_mode.get()])
        self._refresh_controls()
        self.on_settings_changed()

    def _cycle_mode(self):
        mode = self.engine.cycle_keyer_mode()
        self.keyer_mode.set(mode.label)
        self._refresh_controls()
        self.on_settings_changed()

    def toggle_cheat_sheet(self):
        if self._cheat_window is not None and self._cheat_window.winfo_exists():
            self._cheat_window.destroy()
            self._cheat_window = None
            return
        win = tk.Toplevel(self)
        win.title("Cheatsheet")
        lines = cheat_sheet_lines()
        middle = (len(lines) + 1) // 2
        for col, chunk in enumerate((lines[:middle], lines[middle:])):
            ttk.Label(win, text="\n".join(chunk), font=('TkFixedFont', 14), justify="left").grid(
                row=0, column=col, padx=12, pady=8, sticky="n")
        self._cheat_window = win

    # ---- frame loop ----
    def _frame(self):
        now = time.perf_counter()
        delta = (now - self._last_frame) * 1000.0
        self._last_frame = now
        events, self._events = self._events, []
        out = self.engine.advance(delta, events)
        self.ticks_label.config(text=tick_bar(out.ticks))
        self.text_label.config(text=f"{self.engine.text}{out.buffer}|")
        self._frame_job = self.after(FRAME_MS, self._frame)


class ListeningTab(ttk.Frame):
    """Copying practice: hear a phrase, type it, compare."""

    def __init__(self, parent, session: ListeningSession, on_settings_changed: Callable[[], None]):
        super().__init__(parent)
        self.mode_name = "listening"
        self.session = session
        self.on_settings_changed = on_settings_changed

        self.wpm = tk.IntVar(value=session.wpm)
        self.farnsworth = tk.BooleanVar(value=session.farnsworth)
        self.words_per_phrase = tk.IntVar(value=session.words_per_phrase)
        self.typed = tk.StringVar(value="")

        self._build_ui()

    def _build_ui(self):
        inst_frame = ttk.LabelFrame(self, text="Listening Mode")
        inst_frame.pack(fill="x", padx=8, pady=8)
        ttk.Label(inst_frame, text="• Press Play and copy what you hear\n"
                                   "• Type the text and press Enter or Check\n"
                                   "• Farnsworth keeps element speed, stretches the gaps",
                  justify="left").pack(padx=8, pady=8, anchor="w")

        speed_frame = ttk.LabelFrame(self, text="Speed Settings")
        speed_frame.pack(fill="x", padx=8, pady=4)
        ttk.Label(speed_frame, text="WPM:").grid(row=0, column=0, sticky="e", padx=4, pady=4)
        ttk.Spinbox(speed_frame, from_=MIN_WPM, to=MAX_WPM, increment=1, textvariable=self.wpm,
                    width=6).grid(row=0, column=1, padx=4, pady=4)
        ttk.Label(speed_frame, text="Words:").grid(row=0, column=2, sticky="e", padx=4, pady=4)
        ttk.Spinbox(speed_frame, from_=1, to=10, increment=1, textvariable=self.words_per_phrase,
                    width=4).grid(row=0, column=3, padx=4, pady=4)
        ttk.Checkbutton(speed_frame, text="Farnsworth spacing", variable=self.farnsworth).grid(
            row=0, column=4, sticky="w", padx=8)

        btn_frame = ttk.Frame(self)
        btn_frame.pack(fill="x", padx=8, pady=8)
        ttk.Button(btn_frame, text="Play", command=self.play).pack(side="left", padx=4)
        ttk.Button(btn_frame, text="Replay", command=self.replay).pack(side="left", padx=4)

        input_frame = ttk.LabelFrame(self, text="Your copy")
        input_frame.pack(fill="x", padx=8, pady=4)
        entry = ttk.Entry(input_frame, textvariable=self.typed, font=('', 16))
        entry.pack(side="left", fill="x", expand=True, padx=4, pady=4)
        entry.bind("<Return>", lambda _e: self.check())
        ttk.Button(input_frame, text="Check", command=self.check).pack(side="left", padx=4)

        status_frame = ttk.LabelFrame(self, text="Status")
        status_frame.pack(fill="both", expand=True, padx=8, pady=4)
        self.status_label = ttk.Label(status_frame, text="Ready", anchor="w", justify="left")
        self.status_label.pack(fill="both", expand=True, padx=8, pady=8)

    def _sync_session(self):
        try:
            self.session.wpm = max(MIN_WPM, min(MAX_WPM, int(self.wpm.get())))
            self.session.words_per_phrase = max(1, int(self.words_per_phrase.get()))
        except (tk.TclError, ValueError):
            pass  # keep the previous values
        self.session.farnsworth = bool(self.farnsworth.get())

    def play(self):
        self._sync_session()
        self.typed.set("")
        self.session.next_phrase()
        self.status_label.config(text="Listening... type what you copied.")
        self.on_settings_changed()

    def replay(self):
        self._sync_session()
        if self.session.replay() is None:
            self.status_label.config(text="Press Play first.")

    def check(self):
        result = self.session.check(self.typed.get())
        if result is None:
            self.status_label.config(text="Press Play first.")
            return
        attempts, correct = self.session.score()
        verdict = "Correct!" if result.correct else f"Expected: {result.expected}"
        self.status_label.config(text=f"{verdict}\n"
                                      f"You typed: {result.typed}\n"
                                      f"Levenshtein distance: {result.distance}\n"
                                      f"Accuracy: {result.accuracy:.2f}%\n"
                                      f"Score: {correct}/{attempts}")

    # ---- TrainerTabProtocol ----
    def on_show(self) -> None:
        pass

    def on_hide(self) -> None:
        pass

    def get_params(self) -> Dict[str, Any]:
        self._sync_session()
        return {
            'listening_wpm': self.session.wpm,
            'farnsworth': self.session.farnsworth,
            'words_per_phrase': self.session.words_per_phrase,
        }

    def set_params(self, params: Dict[str, Any]) -> None:
        if 'listening_wpm' in params:
            self.wpm.set(params['listening_wpm'])
        if 'farnsworth' in params:
            self.farnsworth.set(bool(params['farnsworth']))
        if 'words_per_phrase' in params:
            self.words_per_phrase.set(params['words_per_phrase'])
        self._sync_session()
