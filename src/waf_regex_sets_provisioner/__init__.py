"""Lambda provisioner for WAF regex set CloudFormation custom resources."""

from .handler import MATCH_SET_TYPE, PATTERN_SET_TYPE, on_event

__all__ = ["MATCH_SET_TYPE", "PATTERN_SET_TYPE", "on_event"]
