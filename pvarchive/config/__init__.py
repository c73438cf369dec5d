"""
The engine, group and channel configuration of the archive.
"""
