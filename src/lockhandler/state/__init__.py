"""State layer.

The registry and the activity log are the only components that hold
lock state. They are owned by :class:`lockhandler.service.LockService` and
mutated exclusively from its event loop.
"""
