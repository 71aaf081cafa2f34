from __future__ import annotations


class TradeError(ValueError):
    """A rejected player action.

    Expected and non-fatal: the operation is aborted before any state changes and the
    message goes back to the acting player only.
    """

    code = "trade_error"
    default_message = "Aktion nicht möglich."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidQuantity(TradeError):
    code = "invalid_quantity"
    default_message = "Ungültige Menge."


class UnknownPlayer(TradeError):
    code = "unknown_player"
    default_message = "Nicht verbunden."


class UnknownCommodity(TradeError):
    code = "unknown_commodity"
    default_message = "Unbekannte Ware."


class InsufficientFunds(TradeError):
    code = "insufficient_funds"
    default_message = "Nicht genug Geld."


class InsufficientInventory(TradeError):
    code = "insufficient_inventory"
    default_message = "Nicht genug Inventar."
