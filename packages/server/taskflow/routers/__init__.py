"""HTTP routers for the taskflow API."""
