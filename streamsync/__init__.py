"""StreamSync - keeps several independently buffering streams in step with a master stream."""

from .handles import StreamHandle, StreamPosition, ClockStreamHandle
from .rate_adjuster import SyncParams, NoOp, Slew, Step, adjust
from .master_selector import MasterSelector
from .controller import SyncController, SyncSession, TickReport, FollowerResult
from .registry import StreamRegistry, StreamSpec

__version__ = "1.0.0"
