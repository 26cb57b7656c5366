from .frame_source import FrameSource

__all__ = ["FrameSource"]
