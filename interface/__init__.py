"""
Interface package: communication protocols for the chess engine.

Modules:
    uci — Universal Chess Interface (UCI) protocol handler.
          Reads commands from stdin, writes responses to stdout.
          Advertises the time-management options and forwards clock
          parameters of "go" to the time planner.
          Can be run as a standalone script: python interface/uci.py
"""
