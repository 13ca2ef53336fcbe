"""
Kleaner - Kubernetes Job and Pod cleanup controller

Deletes finished Jobs and Pods once they age past configured thresholds.

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- api: Shared data models (snapshots, policy, decisions)
- engine: Pure deletion decisions
- scheduler: Event-driven and periodic evaluation
- deleter: Deletion against the cluster
- mirror: list+watch local copy of Jobs and Pods
- controller: Wiring and task lifecycle
"""

__version__ = "1.0.0"
