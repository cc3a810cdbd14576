from chat_relay.services.relay import RelayService

__all__ = ["RelayService"]
