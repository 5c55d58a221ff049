"""Rich outgoing templates (button menus, carousels, lists, receipts)."""
from typing import Dict, Any, List, Optional, ClassVar
from pydantic import BaseModel, ConfigDict, Field


class TemplatePart(BaseModel):
    """Immutable building block of a template."""
    model_config = ConfigDict(frozen=True)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ElementButton(TemplatePart):
    """Button inside a template: web_url, postback, phone_number, ..."""
    type: str = "web_url"
    title: str
    url: Optional[str] = None
    payload: Optional[str] = None
    webview_height_ratio: Optional[str] = None
    messenger_extensions: Optional[bool] = None
    fallback_url: Optional[str] = None


class Element(TemplatePart):
    """Carousel or list entry."""
    title: str
    subtitle: Optional[str] = None
    image_url: Optional[str] = None
    item_url: Optional[str] = None
    default_action: Optional[Dict[str, Any]] = None
    buttons: List[ElementButton] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if not self.buttons:
            data.pop("buttons")
        return data


class ReceiptElement(TemplatePart):
    title: str
    price: float
    subtitle: Optional[str] = None
    quantity: Optional[int] = None
    currency: Optional[str] = None
    image_url: Optional[str] = None


class ReceiptAddress(TemplatePart):
    street_1: str
    city: str
    postal_code: str
    state: str
    country: str
    street_2: Optional[str] = None


class ReceiptSummary(TemplatePart):
    total_cost: float
    subtotal: Optional[float] = None
    shipping_cost: Optional[float] = None
    total_tax: Optional[float] = None


class ReceiptAdjustment(TemplatePart):
    name: str
    amount: float


class Template(TemplatePart):
    """
    Base class for templates.

    Subclasses set TEMPLATE_TYPE and implement ``template_payload``; the
    wrapping attachment structure is shared.
    """
    TEMPLATE_TYPE: ClassVar[str] = ""

    def template_payload(self) -> Dict[str, Any]:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attachment": {
                "type": "template",
                "payload": {"template_type": self.TEMPLATE_TYPE, **self.template_payload()},
            }
        }


class ButtonTemplate(Template):
    """Text with up to three buttons."""
    TEMPLATE_TYPE: ClassVar[str] = "button"

    text: str
    buttons: List[ElementButton] = Field(default_factory=list)

    def add_button(self, button: ElementButton) -> "ButtonTemplate":
        return self.model_copy(update={"buttons": [*self.buttons, button]})

    def template_payload(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "buttons": [button.to_dict() for button in self.buttons],
        }


class GenericTemplate(Template):
    """Horizontal carousel of elements."""
    TEMPLATE_TYPE: ClassVar[str] = "generic"

    elements: List[Element] = Field(default_factory=list)
    image_aspect_ratio: str = "horizontal"

    def add_element(self, element: Element) -> "GenericTemplate":
        return self.model_copy(update={"elements": [*self.elements, element]})

    def template_payload(self) -> Dict[str, Any]:
        return {
            "image_aspect_ratio": self.image_aspect_ratio,
            "elements": [element.to_dict() for element in self.elements],
        }


class ListTemplate(Template):
    """Vertical list of elements with optional global buttons."""
    TEMPLATE_TYPE: ClassVar[str] = "list"

    elements: List[Element] = Field(default_factory=list)
    top_element_style: str = "large"
    buttons: List[ElementButton] = Field(default_factory=list)

    def use_compact_view(self) -> "ListTemplate":
        return self.model_copy(update={"top_element_style": "compact"})

    def add_element(self, element: Element) -> "ListTemplate":
        return self.model_copy(update={"elements": [*self.elements, element]})

    def add_global_button(self, button: ElementButton) -> "ListTemplate":
        return self.model_copy(update={"buttons": [*self.buttons, button]})

    def template_payload(self) -> Dict[str, Any]:
        payload = {
            "top_element_style": self.top_element_style,
            "elements": [element.to_dict() for element in self.elements],
        }
        if self.buttons:
            payload["buttons"] = [button.to_dict() for button in self.buttons]
        return payload


class ReceiptTemplate(Template):
    """Order confirmation."""
    TEMPLATE_TYPE: ClassVar[str] = "receipt"

    recipient_name: str
    order_number: str
    currency: str
    payment_method: str
    summary: ReceiptSummary
    merchant_name: Optional[str] = None
    order_url: Optional[str] = None
    timestamp: Optional[str] = None
    elements: List[ReceiptElement] = Field(default_factory=list)
    address: Optional[ReceiptAddress] = None
    adjustments: List[ReceiptAdjustment] = Field(default_factory=list)

    def template_payload(self) -> Dict[str, Any]:
        payload = {
            "recipient_name": self.recipient_name,
            "order_number": self.order_number,
            "currency": self.currency,
            "payment_method": self.payment_method,
            "elements": [element.to_dict() for element in self.elements],
            "summary": self.summary.to_dict(),
        }
        for key in ("merchant_name", "order_url", "timestamp"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        if self.address:
            payload["address"] = self.address.to_dict()
        if self.adjustments:
            payload["adjustments"] = [adjustment.to_dict() for adjustment in self.adjustments]
        return payload
