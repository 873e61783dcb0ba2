"""Push channel: typed change events and the viewer fanout"""
from sprintboard.realtime.notifier import ChangeNotifier, ViewerConnection

__all__ = ["ChangeNotifier", "ViewerConnection"]
