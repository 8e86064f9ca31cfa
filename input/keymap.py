# ========================= input/keymap.py =========================
import pygame
from typing import Dict

# 按鍵 -> 動作名稱；App.dispatch 依名稱執行
DEFAULT_KEYMAP: Dict[int, str] = {
    pygame.K_SPACE: "toggle_play",
    pygame.K_RETURN: "preview_selected",
    pygame.K_KP_ENTER: "preview_selected",
    pygame.K_LEFT: "select_prev",
    pygame.K_RIGHT: "select_next",
    pygame.K_n: "add_measure",
    pygame.K_DELETE: "remove_selected",
    pygame.K_BACKSPACE: "remove_selected",
    pygame.K_c: "reset_timeline",
    pygame.K_r: "cycle_rhythm",
    pygame.K_l: "toggle_loop",
    pygame.K_EQUALS: "bpm_up",
    pygame.K_KP_PLUS: "bpm_up",
    pygame.K_MINUS: "bpm_down",
    pygame.K_KP_MINUS: "bpm_down",
    pygame.K_PAGEUP: "root_up",
    pygame.K_PAGEDOWN: "root_down",
    pygame.K_m: "toggle_scale",
    pygame.K_ESCAPE: "quit",
}

# 0 = 休止，1..7 = 和弦級數
DEGREE_KEYS: Dict[int, int] = {getattr(pygame, f"K_{d}"): d - 1 for d in range(0, 8)}

HELP_LINES = [
    "SPACE play/stop   ENTER hear chord   LEFT/RIGHT select   0 rest  1-7 chord   R rhythm",
    "N add   DEL remove   C clear   L loop   +/- bpm   PGUP/PGDN root   M mode   ESC quit",
]

def action_for(key: int) -> str | None:
    return DEFAULT_KEYMAP.get(key)

def degree_for(key: int) -> int | None:
    """Chord index for a digit key (0 -> rest = -1), None for other keys."""
    return DEGREE_KEYS.get(key)
