"""
Serving: FastAPI HTTP surface over :class:`~docuchat.service.ChatService`.
"""
