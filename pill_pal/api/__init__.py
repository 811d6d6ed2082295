"""HTTP / WebSocket API（FastAPI router 群）。"""
