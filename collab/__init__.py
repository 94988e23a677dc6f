"""DONEO collaboration core: projects, tasks, subtasks, chat and attachments."""
