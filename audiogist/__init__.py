"""audiogist - turn a hosted audio episode into a five-minute spoken summary"""

__version__ = "1.0.0"
