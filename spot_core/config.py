"""
Global variables used for configuration. These will not change at runtime.
"""

"""Name stamped in every request header unless a client is given another one"""
DEFAULT_CLIENT_NAME = "spot_core"

"""Timeout, in seconds, for RPCs issued without an explicit one"""
DEFAULT_RPC_TIMEOUT = 30.0

"""Time sync polling interval, in seconds, once synchronization is established"""
TIME_SYNC_DEFAULT_INTERVAL = 60.0

"""Time sync back-off, in seconds, while the robot reports the service as not ready"""
TIME_SYNC_NOT_READY_INTERVAL = 5.0

"""Granularity, in seconds, of time sync waits"""
TIME_SYNC_SLEEP_SLICE = 0.01

"""Default wait, in seconds, for time sync to be established"""
TIME_SYNC_WAIT_DEFAULT_TIMEOUT = 3.0

"""Default maximum number of exchanges made when establishing time sync"""
DEFAULT_ESTABLISH_SAMPLES = 25

"""Default polling interval, in seconds, when waiting for services to be registered"""
SERVICE_WAIT_DEFAULT_INTERVAL = 0.1

"""Default timeout, in seconds, when waiting for services to be registered"""
SERVICE_WAIT_DEFAULT_TIMEOUT = 10.0

"""Default feedback polling rate, in Hz, for blocking command helpers"""
DEFAULT_UPDATE_FREQUENCY = 10.0

"""Default timeout, in seconds, for blocking power commands"""
DEFAULT_POWER_COMMAND_TIMEOUT = 30.0

"""Default feedback polling interval, in seconds, for blocking docking"""
DOCKING_DEFAULT_INTERVAL = 1.0

"""Default docking command duration, in seconds"""
DOCKING_DEFAULT_END_DURATION = 30.0

"""Lease resource names"""
BODY_RESOURCE = "body"
FULL_ARM_RESOURCE = "full-arm"
ARM_RESOURCE = "arm"
GRIPPER_RESOURCE = "gripper"
MOBILITY_RESOURCE = "mobility"
FAN_RESOURCE = "fan"
