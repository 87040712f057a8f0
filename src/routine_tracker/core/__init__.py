"""
Core contracts shared by the stores, the recurring pipeline and the router.

Components:
- errors.py: TaskError taxonomy
- results.py: OpResult returned by every router operation
- ports.py: store Protocols (swappable for tests)
"""
