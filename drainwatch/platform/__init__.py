"""
Platform collaborators: cf CLI control, log following, producer driving.
"""

from drainwatch.platform.base import (
    AppSpec,
    FollowedStream,
    InstanceMetadata,
    LogFollower,
    PlatformControl,
    ProducerDriver,
)
from drainwatch.platform.cf import CfCli
from drainwatch.platform.log_stream import CfLogFollower, CfLogStream, LogBuffer
from drainwatch.platform.producer import HttpProducerDriver

__all__ = [
    "AppSpec",
    "FollowedStream",
    "InstanceMetadata",
    "LogFollower",
    "PlatformControl",
    "ProducerDriver",
    "CfCli",
    "CfLogFollower",
    "CfLogStream",
    "LogBuffer",
    "HttpProducerDriver",
]
