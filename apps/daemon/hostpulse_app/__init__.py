"""HostPulse command line and daemon runtime."""
