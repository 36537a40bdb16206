"""SynergySphere team store: users, projects, tasks, chat and notifications."""

__version__ = "0.1.0"
