"""Response modal state — what the notification middleware writes to."""

from typing import Optional

from pydantic import BaseModel

from vitrine.state.actions import HideModal, ModalType, ShowModal

DEFAULT_AUTO_CLOSE_DELAY = 3000  # ms


class ResponseModal(BaseModel):
    is_open: bool = False
    type: ModalType = "error"
    title: str = ""
    message: str = ""
    errors: Optional[dict[str, list[str]]] = None
    auto_close: bool = False
    auto_close_delay: int = DEFAULT_AUTO_CLOSE_DELAY


class UIState:
    """Holds the single global response modal."""

    def __init__(self):
        self.response_modal = ResponseModal()

    def reduce(self, action) -> None:
        if isinstance(action, ShowModal):
            auto_close = action.auto_close
            if auto_close is None:
                auto_close = action.type == "success"
            self.response_modal = ResponseModal(
                is_open=True,
                type=action.type,
                title=action.title,
                message=action.message,
                errors=action.errors,
                auto_close=auto_close,
                auto_close_delay=action.auto_close_delay or DEFAULT_AUTO_CLOSE_DELAY,
            )
        elif isinstance(action, HideModal):
            self.response_modal = self.response_modal.model_copy(update={"is_open": False})
