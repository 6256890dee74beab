from .service import DeliveryService, LoggingDeliveryService, build_ticket_payload

__all__ = ["DeliveryService", "LoggingDeliveryService", "build_ticket_payload"]
