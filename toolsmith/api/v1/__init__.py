"""API v1 module. The assembled router lives in toolsmith.api.v1.routers."""
