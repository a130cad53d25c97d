"""
Trial sequencing and session lifecycle engine for directional thought experiments.

- timing: cancellable delays on a pyglet clock
- execution: trials, sequencing, phases, per-trial state machine, attention checks
- session_controller: run state and the trial loop
- device_adapter / simulated_device / lsl_device: headset boundary
- data_collector: session persistence
- analysis: offline band-power statistics
"""
