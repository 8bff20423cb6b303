"""
tasklink - reconcile task-like items between a primary store and other providers.
"""

__version__ = "0.3.0"
