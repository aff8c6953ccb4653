"""Core forwarding and stream-decoding helpers."""
