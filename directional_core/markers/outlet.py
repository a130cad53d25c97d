"""
LSL marker outlet and emitter.

Markers are pushed as strings on a single-channel irregular-rate stream so
recorders can align them with the EEG stream.
"""

import logging
from typing import Any, Dict, Optional

from .codes import get_name
from .logger import MarkerLogger

logger = logging.getLogger(__name__)


def create_marker_outlet(stream_name: str, metadata: Optional[Dict[str, Any]] = None):
    """
    Create the LSL StreamOutlet for event markers.

    Metadata is stored in the stream description (XDF header).

    Returns:
        StreamOutlet instance
    """
    # pylsl needs the native liblsl; import only when markers are enabled
    from pylsl import StreamInfo, StreamOutlet

    info = StreamInfo(
        name=stream_name,
        type='Markers',
        channel_count=1,
        nominal_srate=0,
        channel_format='string',
        source_id=f"{stream_name.lower()}_markers"
    )
    desc = info.desc()
    desc.append_child_value('experiment_system', 'crown-directional')
    for key, value in (metadata or {}).items():
        desc.append_child_value(str(key), str(value))

    outlet = StreamOutlet(info)
    logger.info(f"LSL marker outlet '{stream_name}' created")
    return outlet


class MarkerEmitter:
    """
    Sends markers to an outlet (if any) and records them in a MarkerLogger.

    Either part may be absent; emitting with neither is a no-op.
    """

    def __init__(self, outlet=None, marker_logger: Optional[MarkerLogger] = None):
        self.outlet = outlet
        self.marker_logger = marker_logger

    def emit(self, marker: int, event_type: Optional[str] = None,
             trial_index: Optional[int] = None, **data):
        if self.outlet is not None:
            try:
                self.outlet.push_sample([str(marker)])
            except Exception as e:
                logger.warning(f"Failed to push marker {marker}: {e}")
        logger.debug(f"Marker: {marker} ({get_name(marker)})")

        if self.marker_logger is not None:
            self.marker_logger.log_marker(marker, event_type=event_type,
                                          trial_index=trial_index, **data)
