"""Tests for template serialization."""
from models.templates import (
    ButtonTemplate, GenericTemplate, ListTemplate, ReceiptTemplate, Element, ElementButton,
    ReceiptElement, ReceiptAddress, ReceiptSummary, ReceiptAdjustment
)


def payload_of(template):
    data = template.to_dict()
    assert data["attachment"]["type"] == "template"
    return data["attachment"]["payload"]


def test_button_template():
    template = ButtonTemplate(text="What next?").add_button(
        ElementButton(type="postback", title="Start", payload="START")
    )
    assert payload_of(template) == {
        "template_type": "button",
        "text": "What next?",
        "buttons": [{"type": "postback", "title": "Start", "payload": "START"}],
    }


def test_generic_template():
    template = GenericTemplate().add_element(Element(title="Shoe", subtitle="Red", image_url="http://img/shoe.png"))
    payload = payload_of(template)
    assert payload["template_type"] == "generic"
    assert payload["image_aspect_ratio"] == "horizontal"
    assert payload["elements"] == [{"title": "Shoe", "subtitle": "Red", "image_url": "http://img/shoe.png"}]


def test_list_template():
    template = (
        ListTemplate()
        .add_element(Element(title="One", buttons=[ElementButton(title="Open", url="http://one")]))
        .add_element(Element(title="Two"))
        .use_compact_view()
        .add_global_button(ElementButton(type="postback", title="More", payload="MORE"))
    )
    payload = payload_of(template)
    assert payload["template_type"] == "list"
    assert payload["top_element_style"] == "compact"
    assert payload["elements"][0]["buttons"] == [{"type": "web_url", "title": "Open", "url": "http://one"}]
    assert "buttons" not in payload["elements"][1]
    assert payload["buttons"] == [{"type": "postback", "title": "More", "payload": "MORE"}]


def test_list_template_without_global_buttons():
    assert "buttons" not in payload_of(ListTemplate(elements=[Element(title="One")]))


def test_receipt_template():
    template = ReceiptTemplate(
        recipient_name="Ada",
        order_number="42",
        currency="USD",
        payment_method="Visa",
        merchant_name="Shop",
        elements=[ReceiptElement(title="Shoe", price=50, quantity=1)],
        address=ReceiptAddress(street_1="1 Main St", city="Springfield", postal_code="123", state="CA", country="US"),
        summary=ReceiptSummary(subtotal=50, total_cost=45),
        adjustments=[ReceiptAdjustment(name="Coupon", amount=5)],
    )
    payload = payload_of(template)
    assert payload["template_type"] == "receipt"
    assert payload["merchant_name"] == "Shop"
    assert "order_url" not in payload
    assert payload["elements"] == [{"title": "Shoe", "price": 50, "quantity": 1}]
    assert payload["address"]["city"] == "Springfield"
    assert "street_2" not in payload["address"]
    assert payload["summary"] == {"total_cost": 45, "subtotal": 50}
    assert payload["adjustments"] == [{"name": "Coupon", "amount": 5}]


def test_templates_are_immutable():
    template = ButtonTemplate(text="Hi")
    updated = template.add_button(ElementButton(title="Go", url="http://go"))
    assert template.buttons == []
    assert len(updated.buttons) == 1
