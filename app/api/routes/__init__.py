from . import generation, jobs, plans, tasks

__all__ = ["generation", "jobs", "plans", "tasks"]
