"""Scheduling: publish windows, daily quota and the bounded event log."""

from pressroom.scheduler.log import EventType, SchedulerEvent, SchedulerLog

__all__ = ["EventType", "SchedulerEvent", "SchedulerLog"]
