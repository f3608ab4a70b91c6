"""Scheduler core: world model, objectives, requests, tasks, overlord and engine."""
