"""Command pipelines: start, review and release."""

from ticketflow.engine.pipeline import Command, Stage
from ticketflow.engine.release import ReleaseCommand
from ticketflow.engine.review import ReviewCommand
from ticketflow.engine.start import StartCommand

__all__ = ["Command", "ReleaseCommand", "ReviewCommand", "Stage", "StartCommand"]
