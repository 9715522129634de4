"""Core domain package for upwatch.

Core contains the polling loop, edge detection and flap suppression without
any protocol, transport or configuration-file code, keeping the monitoring
logic portable.
"""
