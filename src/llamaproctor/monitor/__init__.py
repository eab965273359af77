"""Monitor pipeline for llamaproctor.

Runs the periodic capture -> analyze -> score -> persist pipeline for
one student and keeps the classroom assignment up to date.

Public API:
    MonitorLoop -- Central orchestrator
    AssignmentPoller -- Classroom task polling
"""

from llamaproctor.monitor.assignment import AssignmentPoller
from llamaproctor.monitor.loop import MonitorLoop

__all__ = ["AssignmentPoller", "MonitorLoop"]
