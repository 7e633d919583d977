"""GUS protocol constants shared by the model and the protocol layer."""

# Response tokens. The GUS interface only defines success; "ERR" is the
# documented failure response.
SUCCESS = "ACK"
FAILURE = "ERR"

# Device info schema
GUS_DEVICE_INFO_NAMESPACE = "http://www.gus-interface.com/GusDeviceInfo"
GUS_DEVICE_INFO_SCHEMA_LOCATION = (
    "http://www.gus-interface.com/GusDeviceInfo GusDeviceInfo.xsd"
)
XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"

# Device identity reported in GetInfo
DEFAULT_DEVICE_NAME = "VibrationVIEW_Default"
DEFAULT_DEVICE_MODEL = "VR9500"
MANUFACTURER = "Vibration Research"
DEVICE_REMARK = "Test Interface"
