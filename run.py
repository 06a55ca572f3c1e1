#!/usr/bin/env python3
"""
wavebpm - Wavelet tempo detection

Estimates the tempo of a WAV file, or tracks the tempo of live input,
using DWT sub-band envelopes and autocorrelation.
"""

import argparse
import cProfile
import sys
from pathlib import Path

from audio_source import MicrophoneSource, WavFileSource, list_input_devices
from config import Config
from config_persistence import get_report_dir, load_config, save_config
from errors import AudioSourceError, ConfigurationError, TrackEstimationError
from logging_utils import log_event, set_log_level
from tempo_engine import TempoEngine, WindowResult

EXIT_OK = 0
EXIT_NO_TEMPO = 1
EXIT_SETUP_FAILED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Estimate tempo (BPM) with the discrete wavelet transform")
    parser.add_argument("filename", nargs="?", help="WAV file to analyse")
    parser.add_argument("--live", action="store_true", help="Track tempo from an input device")
    parser.add_argument("--device", type=int, default=None, help="Input device index (default: system default)")
    parser.add_argument("--list-devices", action="store_true", help="List input devices and exit")
    parser.add_argument("--window", type=float, default=None,
                        help="Window length in seconds (default from config: 3)")
    parser.add_argument("--workers", type=int, default=None, help="Threads for file analysis")
    parser.add_argument("--max-windows", type=int, default=None, help="Stop live tracking after N windows")
    parser.add_argument("--log-level", default=None, help="DEBUG/INFO/WARNING/ERROR")
    parser.add_argument("--report-dir", default=None, help="Write session reports to this directory")
    parser.add_argument("--save-config", action="store_true", help="Persist the effective settings")
    parser.add_argument(
        "--profile",
        action="store_true",
        help="Enable cProfile and save stats to --profile-out",
    )
    parser.add_argument(
        "--profile-out",
        default="profile.prof",
        help="Path to save cProfile stats (default: profile.prof)",
    )
    return parser


def apply_args(config: Config, args: argparse.Namespace) -> Config:
    """Overlay command-line options on the loaded config."""
    if args.window is not None:
        config.audio.window_seconds = args.window
    if args.workers is not None:
        config.workers = args.workers
    if args.device is not None:
        config.audio.device_index = args.device
    if args.log_level:
        config.log_level = args.log_level
    if args.report_dir:
        config.report_dir = args.report_dir
        config.report_generation_enabled = True
    return config


def print_window(result: WindowResult) -> None:
    if result.is_valid:
        running = f" (running {result.running_bpm:.1f})" if result.running_bpm else ""
        print(f"window {result.index:4d}: {result.bpm:7.2f} BPM{running}", flush=True)
    else:
        print(f"window {result.index:4d}: -- ({type(result.error).__name__})", flush=True)


def run_app(args: argparse.Namespace) -> int:
    if args.list_devices:
        try:
            devices = list_input_devices()
        except AudioSourceError as e:
            log_event("ERROR", "App", "Cannot list devices", error=e)
            return EXIT_SETUP_FAILED
        for device in devices:
            print(f"[{device['index']}] {device['name']} "
                  f"({device['channels']} ch, {device['sample_rate']:.0f} Hz)")
        return EXIT_OK

    if not args.live and not args.filename:
        log_event("ERROR", "App", "Give a WAV file or --live")
        return EXIT_SETUP_FAILED

    config = apply_args(load_config(), args)
    set_log_level(config.log_level)
    if args.save_config:
        save_config(config)

    report_dir = get_report_dir(config) if config.report_generation_enabled else None
    engine = TempoEngine(config, window_callback=print_window if args.live else None,
                         report_dir=report_dir)

    try:
        if args.live:
            audio = config.audio
            with MicrophoneSource(device=audio.device_index, sample_rate=audio.sample_rate,
                                  channels=audio.channels, dtype=audio.dtype,
                                  period_frames=audio.period_frames) as source:
                try:
                    result = engine.run_live(source, max_windows=args.max_windows)
                except KeyboardInterrupt:
                    log_event("INFO", "App", "Interrupted")
                    return EXIT_OK
        else:
            source = WavFileSource(args.filename)
            result = engine.analyze_source(source, source_name=Path(args.filename).name)
    except (AudioSourceError, ConfigurationError) as e:
        log_event("ERROR", "App", "Setup failed", error=e)
        return EXIT_SETUP_FAILED
    except TrackEstimationError as e:
        log_event("ERROR", "App", "Could not estimate tempo", error=e)
        return EXIT_NO_TEMPO

    print(f"{result.bpm:.2f}")
    return EXIT_OK


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)

    if args.profile:
        profiler = cProfile.Profile()
        profiler.enable()
        exit_code = run_app(args)
        profiler.disable()
        profiler.dump_stats(args.profile_out)
    else:
        exit_code = run_app(args)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
