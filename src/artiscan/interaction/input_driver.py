from __future__ import annotations

import sys
import time
from typing import Optional

from ..errors import ScanInterrupted

# Wheel notches sent per scroll() step, with a short gap so the game registers each
SCROLL_INTERVAL = 0.01


if sys.platform == "win32":
    import ctypes
    from ctypes import wintypes

    import pydirectinput as _pydirectinput

    _pydirectinput.FAILSAFE = False
    _pydirectinput.PAUSE = 0

    _USER32 = ctypes.WinDLL("user32", use_last_error=True)
    _GetAsyncKeyState = _USER32.GetAsyncKeyState
    _GetAsyncKeyState.argtypes = [wintypes.INT]
    _GetAsyncKeyState.restype = wintypes.SHORT

    _VK_RBUTTON = 0x02
    _VK_ESCAPE = 0x1B

    def _is_down(vk: int) -> bool:
        state = _GetAsyncKeyState(vk)
        return bool(state & 0x8000) or bool(state & 0x0001)

    def cancel_pressed() -> bool:
        return _is_down(_VK_RBUTTON) or _is_down(_VK_ESCAPE)

    def moveTo(x: int, y: int) -> None:
        _pydirectinput.moveTo(int(x), int(y))

    def leftClick() -> None:
        _pydirectinput.click(button="left")

    def vscroll(clicks: int, interval: float = 0.0) -> None:
        if clicks == 0:
            return
        step = 1 if clicks > 0 else -1
        for _ in range(abs(clicks)):
            _pydirectinput.scroll(step)
            if interval > 0:
                time.sleep(interval)

elif sys.platform.startswith("linux"):
    import threading

    from pynput import keyboard, mouse

    _MOUSE = mouse.Controller()
    _CANCEL_PRESSED = threading.Event()
    _LISTENERS: list = []
    _LISTENER_LOCK = threading.Lock()

    def _ensure_listeners() -> None:
        if _LISTENERS:
            return
        with _LISTENER_LOCK:
            if _LISTENERS:
                return

            def on_key_press(key) -> None:
                if key == keyboard.Key.esc:
                    _CANCEL_PRESSED.set()

            def on_click(x, y, button, pressed) -> None:
                if pressed and button == mouse.Button.right:
                    _CANCEL_PRESSED.set()

            key_listener = keyboard.Listener(on_press=on_key_press)
            mouse_listener = mouse.Listener(on_click=on_click)
            for listener in (key_listener, mouse_listener):
                listener.daemon = True
                listener.start()
                _LISTENERS.append(listener)

    def cancel_pressed() -> bool:
        _ensure_listeners()
        if _CANCEL_PRESSED.is_set():
            _CANCEL_PRESSED.clear()
            return True
        return False

    def moveTo(x: int, y: int) -> None:
        _MOUSE.position = (int(x), int(y))

    def leftClick() -> None:
        _MOUSE.click(mouse.Button.left, 1)

    def vscroll(clicks: int, interval: float = 0.0) -> None:
        if clicks == 0:
            return
        step = 1 if clicks > 0 else -1
        for _ in range(abs(clicks)):
            _MOUSE.scroll(0, step)
            if interval > 0:
                time.sleep(interval)

else:
    raise RuntimeError(f"Unsupported platform for input driver: {sys.platform}")


class PointerController:
    """
    The single owner of synthetic pointer input for a scan session.

    Every action first checks the cancel inputs (right mouse button or
    Escape) and raises ``ScanInterrupted`` once one is seen.
    """

    def __init__(self) -> None:
        self._cancelled = False

    def cancel_requested(self) -> bool:
        if not self._cancelled and cancel_pressed():
            self._cancelled = True
        return self._cancelled

    def abort_if_cancelled(self) -> None:
        if self.cancel_requested():
            raise ScanInterrupted("cancelled by user input")

    def move_to(self, x: int, y: int) -> None:
        self.abort_if_cancelled()
        moveTo(x, y)

    def click(self) -> None:
        self.abort_if_cancelled()
        leftClick()

    def scroll(self, ticks: int) -> None:
        """
        Scroll the wheel; positive ticks move the list down.
        """
        self.abort_if_cancelled()
        vscroll(-ticks, interval=SCROLL_INTERVAL)

    def sleep(self, seconds: Optional[float]) -> None:
        if seconds and seconds > 0:
            time.sleep(seconds)
        self.abort_if_cancelled()
