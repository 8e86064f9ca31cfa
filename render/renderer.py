# render/renderer.py
import pygame
from typing import Dict, List, Optional, Sequence

from config import RenderConfig
from music.model import Chord, Measure

STATUS_H = 36
BTN_PAD_X = 12
BTN_GAP = 10
MARGIN = 16

BUTTONS = ["PLAY/STOP", "CLEAR", "LOOP", "QUIT"]

class Renderer:
    def __init__(self, cfg: RenderConfig):
        pygame.init()
        self.cfg = cfg
        self.screen = pygame.display.set_mode((cfg.window_w, cfg.window_h))
        pygame.display.set_caption("Chord Step Sequencer")
        self.font = pygame.font.SysFont("consolas", 18)
        self.font_small = pygame.font.SysFont("consolas", 14)
        self.font_big = pygame.font.SysFont("consolas", 22, bold=True)
        self.clock = pygame.time.Clock()

        # 供 App 做滑鼠點擊判定
        self.button_rects: Dict[str, pygame.Rect] = {}
        self.palette_rects: List[pygame.Rect] = []
        self.cell_rects: Dict[str, pygame.Rect] = {}
        self.add_rect: Optional[pygame.Rect] = None

    def tick(self, fps: Optional[int] = None) -> float:
        return self.clock.tick(fps or self.cfg.fps) / 1000.0

    def begin_frame(self):
        self.screen.fill((23, 23, 23))

    def end_frame(self):
        pygame.display.flip()

    # ------- status bar -------
    def draw_status_bar(self, is_playing: bool, right_info_text: str = ""):
        pygame.draw.rect(self.screen, (24, 24, 28), (0, 0, self.cfg.window_w, STATUS_H))
        pygame.draw.line(self.screen, (60, 60, 66), (0, STATUS_H), (self.cfg.window_w, STATUS_H), 1)

        x = 10; self.button_rects.clear()
        for label in BUTTONS:
            surf = self.font_small.render(label, True, (220, 220, 230))
            rect = surf.get_rect(); rect.topleft = (x + BTN_PAD_X, (STATUS_H - rect.height)//2)
            box = pygame.Rect(x, 4, rect.width + BTN_PAD_X*2, STATUS_H - 8)
            fill = (40, 40, 46)
            if label == "PLAY/STOP":
                fill = (150, 45, 45) if is_playing else (30, 120, 60)
            pygame.draw.rect(self.screen, fill, box, border_radius=6)
            pygame.draw.rect(self.screen, (75, 75, 85), box, 1, border_radius=6)
            self.screen.blit(surf, rect)
            self.button_rects[label] = box
            x += box.width + BTN_GAP

        if right_info_text:
            right = self.font_small.render(right_info_text, True, (180, 180, 190))
            self.screen.blit(right, (self.cfg.window_w - right.get_width() - 10,
                                     (STATUS_H - right.get_height())//2))

    # ------- chord palette -------
    def draw_palette(self, chords: Sequence[Chord], title: str):
        y = STATUS_H + MARGIN
        label = self.font.render(title, True, (96, 165, 250))
        self.screen.blit(label, (MARGIN, y))
        y += label.get_height() + 8

        self.palette_rects = []
        x = MARGIN
        for i, chord in enumerate(chords):
            box = pygame.Rect(x, y, 96, self.cfg.palette_h - 16)
            pygame.draw.rect(self.screen, (64, 64, 64), box, border_radius=8)
            pygame.draw.rect(self.screen, (82, 82, 82), box, 1, border_radius=8)
            name = self.font_big.render(chord.name, True, (240, 240, 240))
            self.screen.blit(name, name.get_rect(center=(box.centerx, box.centery - 6)))
            deg = self.font_small.render(str(i + 1), True, (140, 140, 150))
            self.screen.blit(deg, deg.get_rect(center=(box.centerx, box.bottom - 10)))
            self.palette_rects.append(box)
            x += box.width + 10

    # ------- timeline -------
    def timeline_top(self) -> int:
        return STATUS_H + MARGIN + 30 + self.cfg.palette_h + MARGIN

    def draw_timeline(self, measures: Sequence[Measure], chords: Sequence[Chord],
                      current_step: int, selected_id: Optional[str]):
        cw, ch, gap = self.cfg.cell_w, self.cfg.cell_h, self.cfg.cell_gap
        per_row = max(1, (self.cfg.window_w - 2 * MARGIN + gap) // (cw + gap))
        top = self.timeline_top()

        title = self.font.render(f"Timeline  ({len(measures)} measures)", True, (220, 220, 230))
        self.screen.blit(title, (MARGIN, top))
        top += title.get_height() + 10

        self.cell_rects = {}
        self.add_rect = None
        for i, m in enumerate(list(measures) + [None]):
            row, col = divmod(i, per_row)
            box = pygame.Rect(MARGIN + col * (cw + gap), top + row * (ch + gap), cw, ch)
            if box.top > self.cfg.window_h:
                break
            if m is None:
                self.add_rect = box
                pygame.draw.rect(self.screen, (82, 82, 82), box, 2, border_radius=8)
                plus = self.font_big.render("+ Add", True, (115, 115, 115))
                self.screen.blit(plus, plus.get_rect(center=box.center))
                continue

            playing = i == current_step
            border = (34, 197, 94) if playing else (64, 64, 64)
            if m.id == selected_id:
                border = (250, 204, 21) if not playing else border
            pygame.draw.rect(self.screen, (38, 38, 38), box, border_radius=8)
            pygame.draw.rect(self.screen, border, box, 3 if playing or m.id == selected_id else 2,
                             border_radius=8)

            bar = self.font_small.render(f"BAR {i + 1}", True, (115, 115, 115))
            self.screen.blit(bar, (box.x + 10, box.y + 8))

            chord = chords[m.chord_index] if 0 <= m.chord_index < len(chords) else None
            text, color = (chord.name, (147, 197, 253)) if chord else ("Rest", (115, 115, 115))
            name = self.font_big.render(text, True, color)
            self.screen.blit(name, name.get_rect(center=(box.centerx, box.centery)))

            rhythm = self.font_small.render(f"Rhythm {m.rhythm.label}", True, (160, 160, 170))
            self.screen.blit(rhythm, (box.x + 10, box.bottom - rhythm.get_height() - 8))
            self.cell_rects[m.id] = box

    def draw_help(self, lines: Sequence[str]):
        y = self.cfg.window_h - MARGIN
        for line in reversed(lines):
            surf = self.font_small.render(line, True, (120, 120, 130))
            y -= surf.get_height() + 4
            self.screen.blit(surf, (MARGIN, y))
