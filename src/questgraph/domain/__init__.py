"""Domain models for tasks, storyline nodes and tracked progress."""
