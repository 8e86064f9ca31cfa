# main.py
import sys, os
sys.path.append(os.path.dirname(__file__))  # 確保能找到 config.py

from utils.crashlog import setup_crashlog, log_exception, log_dir
setup_crashlog()

import argparse
import logging
from logging.handlers import RotatingFileHandler
from config import AppConfig, AudioConfig, KeyConfig, RenderConfig, TransportConfig
from music.chords import NOTE_NAMES, SCALES

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

def _init_logging(level=logging.DEBUG):
    logs = log_dir()
    log_path = os.path.join(logs, "app.log")

    if logging.getLogger().handlers:
        return

    logging.basicConfig(level=level, format=LOG_FORMAT, encoding="utf-8")
    try:
        fh = RotatingFileHandler(log_path, maxBytes=2*1024*1024, backupCount=3, encoding="utf-8")
    except OSError as e:
        logging.warning("File logging disabled: %s", e)
        return
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.getLogger().addHandler(fh)

def build_parser() -> argparse.ArgumentParser:
    d = TransportConfig()
    ap = argparse.ArgumentParser(description="Chord step sequencer")
    ap.add_argument('--bpm', type=int, default=d.bpm, help=f"tempo ({d.bpm_min}-{d.bpm_max})")
    ap.add_argument('--root', default=KeyConfig.root, choices=NOTE_NAMES)
    ap.add_argument('--scale', default=KeyConfig.mode, choices=list(SCALES))
    ap.add_argument('--no-loop', action='store_true', help="play the timeline once")
    ap.add_argument('--lookahead', type=float, default=d.lookahead)
    ap.add_argument('--fps', type=int, default=RenderConfig.fps)
    ap.add_argument('--sample-rate', type=int, default=AudioConfig.sample_rate)
    ap.add_argument('--quiet', action='store_true', help="log INFO and above only")
    return ap

def config_from_args(args: argparse.Namespace) -> AppConfig:
    return AppConfig(
        render=RenderConfig(fps=args.fps),
        audio=AudioConfig(sample_rate=args.sample_rate),
        transport=TransportConfig(bpm=args.bpm, looping=not args.no_loop, lookahead=args.lookahead),
        key=KeyConfig(root=args.root, mode=args.scale),
    )

def main(argv=None):
    args = build_parser().parse_args(argv)
    _init_logging(logging.INFO if args.quiet else logging.DEBUG)
    logging.info("應用程式啟動")

    cfg = config_from_args(args)
    from app import App
    App(cfg).run()

if __name__ == '__main__':
    try:
        main()
    except Exception as e:
        try:
            log_exception("Top-level exception", e)
        except OSError:
            pass
        logging.error("未捕捉的例外：%s", e, exc_info=True)
        print("程式發生錯誤，請到 logs/ 資料夾看 app.log 與 error-*.txt")
        sys.exit(1)
