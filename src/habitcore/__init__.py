"""habitcore: local-first habit progress engine.

Classifies days from routine checks, derives streaks with rest-day and
freeze semantics, tracks milestones, caches reads and queues writes made
while offline.
"""

from habitcore.engine import HabitEngine

__version__ = "0.1.0"

__all__ = ["HabitEngine", "__version__"]
