"""
Session runner: builds a controller from configuration and drives it.

run_session_loop() ticks the controller's clock and polls a command queue
on that same clock, so console input, a GUI process or tests can pause,
resume, stop and answer attention checks. run_session_subprocess() is the
multiprocessing entry point that reports back over a progress queue.
"""

import logging
import os
import queue
import time
import traceback
from typing import Any, Dict, Optional

from directional_config.config_io import load_credentials, missing_credentials
from directional_config.experiment import ExperimentConfig
from .data_collector import SessionStore
from .ipc.messages import (
    MessageType, IPCMessage, complete_message, error_message
)
from .lsl_device import LSLDeviceAdapter
from .markers import MarkerEmitter, MarkerLogger, create_marker_outlet
from .presenter import LoggingPresenter, QueuePresenter
from .run_state import RunState
from .session_controller import ControlResult, SessionController
from .simulated_device import SimulatedDeviceAdapter
from .timing import create_clock, run_until

logger = logging.getLogger(__name__)

DEVICE_KINDS = ('none', 'simulated', 'lsl')


def build_device(kind: Optional[str], config: ExperimentConfig, clock=None,
                 stream_name: str = "EEG"):
    """
    Create the device adapter named by kind.

    Raises:
        ValueError: If kind is unknown
    """
    if kind in (None, 'none'):
        return None
    if kind == 'simulated':
        return SimulatedDeviceAdapter(clock=clock, sample_interval=config.sample_interval,
                                      seed=config.seed)
    if kind == 'lsl':
        return LSLDeviceAdapter(stream_name=stream_name, clock=clock,
                                sample_interval=config.sample_interval)
    raise ValueError(f"Unknown device kind: {kind!r} (expected one of {DEVICE_KINDS})")


def build_emitter(config: ExperimentConfig) -> MarkerEmitter:
    """Marker emitter that always logs and pushes to LSL when enabled."""
    outlet = None
    if config.lsl_markers_enabled:
        outlet = create_marker_outlet(config.marker_stream_name, metadata={
            'variant': config.variant,
            'total_trials': config.total_trials,
        })
    return MarkerEmitter(outlet=outlet, marker_logger=MarkerLogger())


def build_controller(config: ExperimentConfig, device_kind: Optional[str] = 'none',
                     presenter=None, clock=None, stream_name: str = "EEG",
                     save: bool = True) -> SessionController:
    clock = clock or create_clock()
    return SessionController(
        config,
        device=build_device(device_kind, config, clock=clock, stream_name=stream_name),
        presenter=presenter or LoggingPresenter(),
        clock=clock,
        store=SessionStore(config.output_directory, save_enabled=save),
        emitter=build_emitter(config),
    )


def connect_from_environment(controller: SessionController,
                             env_file: Optional[str] = None) -> ControlResult:
    """
    Connect the controller's device with credentials from the environment.

    Credentials are only mandatory for adapters that authenticate against a
    cloud account; local adapters ignore them.
    """
    credentials = load_credentials(env_file)
    missing = missing_credentials(credentials)
    if missing and getattr(controller.device, 'requires_credentials', False):
        return ControlResult(False, f"Missing required environment variables: {', '.join(missing)}")
    return controller.connect_device(credentials['device_id'], credentials['email'],
                                     credentials['password'])


def handle_command(controller: SessionController, message: Dict[str, Any]) -> bool:
    """
    Apply one command message to the controller.

    Returns:
        False when the loop should exit (SHUTDOWN), True otherwise

    Raises:
        ValueError / KeyError: If message is not a valid command
    """
    msg = IPCMessage.from_dict(message)
    if not msg.is_command:
        logger.warning(f"Ignoring non-command message: {msg.type.value}")
        return True
    data = msg.data or {}

    if msg.type == MessageType.START:
        result = controller.start(data.get('mode'))
    elif msg.type == MessageType.PAUSE:
        result = controller.pause()
    elif msg.type == MessageType.RESUME:
        result = controller.resume()
    elif msg.type == MessageType.STOP:
        result = controller.stop()
    elif msg.type == MessageType.ANSWER:
        result = controller.answer_attention_check(data.get('direction', ''))
    else:  # SHUTDOWN
        if controller.state.is_active:
            controller.stop()
        return False

    if result.success:
        logger.info(f"{msg.type.value}: {result.message}")
    else:
        logger.warning(f"{msg.type.value} rejected: {result.message}")
    return True


def run_session_loop(controller: SessionController, command_queue=None,
                     poll_interval: float = 0.05, exit_when_stopped: bool = True,
                     sleep=time.sleep) -> Optional[ControlResult]:
    """
    Drive the controller until the session stops (or SHUTDOWN arrives).

    Args:
        controller: Controller whose clock is ticked
        command_queue: Optional queue of command dicts (see ipc.messages)
        poll_interval: Seconds between command-queue polls
        exit_when_stopped: Return as soon as the session reaches STOPPED
        sleep: Sleep function (tests pass a no-op)

    Returns:
        The controller's final ControlResult, if the session ended
    """
    shutdown = []

    def check_commands(dt):
        """Periodically drain the command queue."""
        while True:
            try:
                message = command_queue.get_nowait()
            except queue.Empty:
                return
            try:
                if not handle_command(controller, message):
                    shutdown.append(True)
                    return
            except (ValueError, KeyError) as e:
                logger.error(f"Invalid command {message!r}: {e}")

    def finished():
        if shutdown:
            return True
        return exit_when_stopped and controller.state == RunState.STOPPED

    if command_queue is not None:
        controller.clock.schedule_interval(check_commands, poll_interval)
    try:
        run_until(controller.clock, finished, poll_interval=min(poll_interval, 0.01), sleep=sleep)
    finally:
        if command_queue is not None:
            controller.clock.unschedule(check_commands)

    return controller.last_result


def run_session_subprocess(config_dict: Dict[str, Any], mode: str, device_kind: str,
                           command_queue, progress_queue, stream_name: str = "EEG"):
    """
    Entry point for running a session in a separate process.

    Presentation events, progress and the final summary (or error) are
    sent as IPC message dicts on progress_queue.
    """
    print(f"[Subprocess] Starting session subprocess (PID: {os.getpid()})")
    controller = None

    try:
        config = ExperimentConfig.from_dict(config_dict)
        controller = build_controller(config, device_kind,
                                      presenter=QueuePresenter(progress_queue),
                                      stream_name=stream_name)

        if controller.device is not None:
            connected = connect_from_environment(controller)
            if not connected.success:
                progress_queue.put(error_message(connected.message))
                return

        started = controller.start(mode)
        if not started.success:
            progress_queue.put(error_message(started.message))
            return

        result = run_session_loop(controller, command_queue)
        progress_queue.put(complete_message(result.data if result else {}))
        print("[Subprocess] Session finished")

    except Exception as e:
        progress_queue.put(error_message(str(e), traceback.format_exc()))
        print("[Subprocess] Error during execution:")
        print(traceback.format_exc())

    finally:
        if controller is not None and controller.device is not None:
            controller.device.disconnect()
        print("[Subprocess] Session subprocess exiting")
