"""Application layer: the editing session and its state objects.

- EditingSession is the single owner of mutable state (source, parameters,
  preview, view state) and the only entry point for UI commands.
- SessionState / ViewState are what widgets bind to.
"""
