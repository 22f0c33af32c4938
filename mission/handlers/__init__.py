"""Scheduled jobs for Mission Control.

Each handler is a short-lived unit of work run by the external scheduler:
one heartbeat per agent, the notification daemon, and the daily standup.
Handlers never raise; they return a result object the CLI maps to an exit
code.
"""
