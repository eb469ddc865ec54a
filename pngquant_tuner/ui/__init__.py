"""Qt widgets. They render session state and forward gestures as session commands."""
