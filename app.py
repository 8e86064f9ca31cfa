# app.py
import logging
import pygame
from typing import Optional

from config import AppConfig
from audio.synth import Synth, AudioUnavailableError
from input.keymap import HELP_LINES, action_for, degree_for
from music.model import REST, Rhythm
from render.renderer import Renderer
from sequencer import Sequencer
from utils.crashlog import log_exception

RHYTHM_CYCLE = list(Rhythm)
BPM_STEP = 5

class App:
    def __init__(self, cfg: AppConfig):
        self.cfg = cfg
        self.renderer = Renderer(cfg.render)
        self.synth = Synth(cfg.audio)
        self.seq = Sequencer(cfg, self.synth, ensure_ready=self.synth.ensure_ready)

        # 目前選取的小節（以 id 追蹤，刪除/清除後自動修正）
        self.selected_id: Optional[str] = self.seq.measures[0].id
        self.running = True

        # UI 訊息（toast）
        self._msg = ""
        self._msg_time = 0.0

    # ---------- UI 訊息 ----------
    def _toast(self, msg: str, secs: float = 4.0):
        self._msg = msg
        self._msg_time = max(self._msg_time, secs)

    # ---------- selection ----------
    def _selected_index(self) -> int:
        i = self.seq.store.index_of(self.selected_id) if self.selected_id else -1
        if i < 0:
            self.selected_id = self.seq.measures[0].id
            i = 0
        return i

    def _select(self, index: int):
        measures = self.seq.measures
        self.selected_id = measures[max(0, min(index, len(measures) - 1))].id

    # ---------- actions ----------
    def toggle_play(self):
        try:
            self.seq.toggle_play()
        except AudioUnavailableError as e:
            log_exception("toggle_play", e)
            self._toast("Audio unavailable (see logs)", 6.0)

    def preview(self, chord_index: int):
        chord = self.seq.chords.get(chord_index)
        if chord is None:
            return
        try:
            self.seq.preview_chord(chord)
        except AudioUnavailableError as e:
            log_exception("preview_chord", e)
            self._toast("Audio unavailable (see logs)", 6.0)

    def dispatch(self, action: str):
        seq = self.seq
        i = self._selected_index()
        if action == "toggle_play":
            self.toggle_play()
        elif action == "preview_selected":
            self.preview(seq.measures[i].chord_index)
        elif action == "select_prev":
            self._select(i - 1)
        elif action == "select_next":
            self._select(i + 1)
        elif action == "add_measure":
            self.selected_id = seq.add_measure().id
        elif action == "remove_selected":
            if seq.remove_measure(self.selected_id):
                self._select(i)
        elif action == "reset_timeline":
            seq.reset_timeline()
            self._select(0)
            self._toast("Timeline cleared", 2.0)
        elif action == "cycle_rhythm":
            m = seq.measures[i]
            nxt = RHYTHM_CYCLE[(RHYTHM_CYCLE.index(m.rhythm) + 1) % len(RHYTHM_CYCLE)]
            seq.update_measure(m.id, "rhythm", nxt)
        elif action == "toggle_loop":
            seq.set_looping(not seq.is_looping)
        elif action == "bpm_up":
            seq.set_bpm(seq.bpm + BPM_STEP)
        elif action == "bpm_down":
            seq.set_bpm(seq.bpm - BPM_STEP)
        elif action == "root_up":
            seq.cycle_root(+1)
        elif action == "root_down":
            seq.cycle_root(-1)
        elif action == "toggle_scale":
            seq.toggle_scale()
        elif action == "quit":
            self.running = False
        else:
            logging.warning("Unknown action: %r", action)

    def _on_key(self, key: int):
        degree = degree_for(key)
        if degree is not None:
            m = self.seq.measures[self._selected_index()]
            self.seq.update_measure(m.id, "chord_index", degree)
            if degree != REST:
                self.preview(degree)
            return
        action = action_for(key)
        if action:
            self.dispatch(action)

    def _on_click(self, pos):
        r = self.renderer
        for label, rect in r.button_rects.items():
            if rect.collidepoint(pos):
                if label == "PLAY/STOP":
                    self.dispatch("toggle_play")
                elif label == "CLEAR":
                    self.dispatch("reset_timeline")
                elif label == "LOOP":
                    self.dispatch("toggle_loop")
                elif label == "QUIT":
                    self.dispatch("quit")
                return
        for idx, rect in enumerate(r.palette_rects):
            if rect.collidepoint(pos):
                self.preview(idx); return
        for measure_id, rect in r.cell_rects.items():
            if rect.collidepoint(pos):
                self.selected_id = measure_id; return
        if r.add_rect and r.add_rect.collidepoint(pos):
            self.dispatch("add_measure")

    # ---------- Main loop ----------
    def run(self):
        try:
            while self.running:
                dt = self.renderer.tick()
                for e in pygame.event.get():
                    if e.type == pygame.QUIT:
                        self.running = False
                    elif e.type == pygame.KEYDOWN:
                        self._on_key(e.key)
                    elif e.type == pygame.MOUSEBUTTONDOWN and e.button == 1:
                        self._on_click(e.pos)
                if not self.running:
                    break

                # ===== 訊息倒數（toast） =====
                if self._msg_time > 0:
                    self._msg_time -= dt
                    if self._msg_time <= 0:
                        self._msg_time = 0
                        self._msg = ""

                # ===== 排程：tick（提前）與 UI 同步，再把到點的音送出 =====
                now = self.seq.pump()
                self.synth.pump(now)

                self.draw()
        finally:
            self.seq.stop()
            self.synth.close()
            logging.info("App closed")

    def draw(self):
        seq = self.seq
        self.renderer.begin_frame()
        right_fields = [
            f"KEY: {seq.chords.root} {seq.chords.mode}",
            f"BPM: {seq.bpm}",
            f"LOOP: {'ON' if seq.is_looping else 'OFF'}",
            f"STEP: {seq.current_step_index + 1 if seq.current_step_index >= 0 else '-'}",
        ]
        if self._msg: right_fields.append(self._msg)
        self.renderer.draw_status_bar(seq.is_playing, right_info_text="  |  ".join(right_fields))
        self.renderer.draw_palette(seq.current_chords, f"Chord palette ({seq.chords.root} {seq.chords.mode})")
        self.renderer.draw_timeline(seq.measures, seq.current_chords,
                                    seq.current_step_index, self.selected_id)
        self.renderer.draw_help(HELP_LINES)
        self.renderer.end_frame()
