"""
Command line entry point.

    directional-session run --mode inner-speech --device simulated
    directional-session run --variant up-down --device lsl --stream-name CrownEEG
    directional-session analyze data/inner-speech-session-2024-05-01T10-00-00.json

While a session runs, type commands on stdin:
    p = pause/resume, s = stop, up/down/left/right = answer an attention check
"""

import argparse
import logging
import queue
import sys
import threading

from directional_config.config_io import load_config
from directional_config.experiment import ExperimentConfig, VARIANTS, VARIANT_UP_DOWN
from directional_config.modes import Mode
from .analysis import analyze_session_file
from .ipc.messages import answer_command, pause_command, resume_command, stop_command
from .run_state import RunState
from .session_runner import DEVICE_KINDS, build_controller, connect_from_environment, run_session_loop

logger = logging.getLogger(__name__)


def _build_config(args) -> ExperimentConfig:
    if args.config:
        config = load_config(args.config)
        if config is None:
            raise SystemExit(f"Could not load configuration from {args.config}")
    elif args.variant == VARIANT_UP_DOWN:
        config = ExperimentConfig.up_down()
    else:
        config = ExperimentConfig()

    overrides = {}
    if args.trials is not None:
        if config.balanced:
            overrides['up_trials'] = args.trials // 2
            overrides['down_trials'] = args.trials - args.trials // 2
        else:
            overrides['total_trials'] = args.trials
    if args.check_probability is not None:
        overrides['check_probability'] = args.check_probability
    if args.check_timeout is not None:
        overrides['check_timeout'] = args.check_timeout
    if args.output:
        overrides['output_directory'] = args.output
    if args.seed is not None:
        overrides['seed'] = args.seed
    if args.lsl_markers:
        overrides['lsl_markers_enabled'] = True

    if overrides:
        data = config.to_dict()
        data.update(overrides)
        config = ExperimentConfig.from_dict(data)
    return config


def _stdin_reader(commands: queue.Queue, controller):
    """Translate console lines into command messages."""
    for line in sys.stdin:
        text = line.strip().lower()
        if not text:
            continue
        if text in ('p', 'pause'):
            paused = controller.state == RunState.PAUSED
            commands.put(resume_command() if paused else pause_command())
        elif text in ('s', 'q', 'stop', 'quit'):
            commands.put(stop_command())
            return
        else:
            commands.put(answer_command(text))


def cmd_run(args) -> int:
    config = _build_config(args)
    for problem in config.validate():
        print(f"Configuration warning: {problem}")

    controller = build_controller(config, args.device, stream_name=args.stream_name,
                                  save=not args.no_save)

    if controller.device is not None:
        connected = connect_from_environment(controller, args.env_file)
        print(connected.message)
        if not connected.success:
            return 1

    print(f"Estimated duration: {controller.estimated_duration() / 60:.1f} min")
    started = controller.start(args.mode)
    if not started.success:
        print(f"Could not start session: {started.message}")
        return 1

    commands: queue.Queue = queue.Queue()
    reader = threading.Thread(target=_stdin_reader, args=(commands, controller), daemon=True)
    reader.start()

    try:
        result = run_session_loop(controller, commands)
    except KeyboardInterrupt:
        result = controller.stop()
    finally:
        if controller.device is not None:
            controller.device.disconnect()

    if result is None:
        return 1
    print(result.message)
    return 0 if result.success else 1


def cmd_analyze(args) -> int:
    path = analyze_session_file(args.file, output_dir=args.output_dir)
    return 0 if path else 1


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="directional-session",
                                 description="Directional thought experiment sessions")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = ap.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run a session")
    run.add_argument("--mode", default=Mode.INNER_SPEECH.value,
                     choices=[m.value for m in Mode])
    run.add_argument("--variant", default=None, choices=VARIANTS)
    run.add_argument("--config", help="Experiment configuration JSON")
    run.add_argument("--trials", type=int, help="Number of trials")
    run.add_argument("--check-probability", type=float)
    run.add_argument("--check-timeout", type=float, help="Seconds to wait for an attention-check answer")
    run.add_argument("--device", default="none", choices=DEVICE_KINDS)
    run.add_argument("--stream-name", default="EEG", help="LSL EEG stream name (--device lsl)")
    run.add_argument("--env-file", help=".env file with DEVICE_ID, EMAIL, PASSWORD")
    run.add_argument("--output", help="Output directory")
    run.add_argument("--seed", type=int)
    run.add_argument("--lsl-markers", action="store_true", help="Send event markers over LSL")
    run.add_argument("--no-save", action="store_true", help="Do not write any files")
    run.set_defaults(func=cmd_run)

    analyze = sub.add_parser("analyze", help="Analyze a recorded session file")
    analyze.add_argument("file")
    analyze.add_argument("--output-dir", help="Directory for the analysis JSON")
    analyze.set_defaults(func=cmd_analyze)
    return ap


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
