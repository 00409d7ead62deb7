"""
Command line interface for the change set task.
"""
