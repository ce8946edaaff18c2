"""Tax invoice generation for an engagement.

The model lays out the HTML; the amounts are computed here. The template
carries ``{{CGST}}``, ``{{SGST}}``, ``{{TOTAL}}`` and ``{{TOTAL_IN_WORDS}}``
placeholders that the model must leave untouched and that are substituted
after inference.
"""

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from practice_flows.errors import MissingReferenceError
from practice_flows.flows.base import Flow
from practice_flows.models import CLIENTS, ENGAGEMENTS
from practice_flows.schemas import EngagementRef, GenerateInvoiceInput, GenerateInvoiceOutput
from practice_flows.tools import GENERATE_INVOICE_TOOLS
from practice_flows.tools.data_access import get_invoice_data

GST_RATE = Decimal("0.09")
SAC_CODE = "998314"
CENT = Decimal("0.01")

_ONES = [
    "", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine",
    "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen",
    "Seventeen", "Eighteen", "Nineteen",
]
_TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]

# Indian grouping, largest first.
_SCALES = [(10_000_000, "Crore"), (100_000, "Lakh"), (1_000, "Thousand"), (100, "Hundred")]

INVOICE_TEMPLATE = """\
<!DOCTYPE html>
<html>
<head>
  <title>Invoice</title>
  <style>
    body { font-family: Helvetica, Arial, sans-serif; color: #333; }
    .container { max-width: 800px; margin: auto; padding: 20px; border: 1px solid #eee; }
    .header, .addresses, .invoice-info { display: flex; justify-content: space-between; }
    .address-block { width: 48%; }
    table { width: 100%; border-collapse: collapse; }
    th, td { border: 1px solid #eee; padding: 8px; text-align: left; }
    .totals { display: flex; justify-content: flex-end; margin-top: 20px; }
    .totals table { width: 40%; }
    .total-row td { font-weight: bold; }
  </style>
</head>
<body>
  <div class="container">
    <div class="header">
      <div>
        <h3>[Firm Name]</h3>
        <p>[Firm Address Line 1]<br>[Firm Address Line 2]<br>[Firm Address Line 3]</p>
        <p>GSTIN: [Firm GSTN]</p>
      </div>
      <div>
        <h2>TAX INVOICE</h2>
        <p><strong>Invoice#:</strong> [Invoice Number]</p>
      </div>
    </div>
    <div class="addresses">
      <div class="address-block">
        <h4>Bill To</h4>
        <p><strong>[Client Name]</strong><br>[Client Address Lines]</p>
        <p>GSTIN: [Client GSTIN]</p>
      </div>
      <div class="address-block">
        <h4>Ship To</h4>
        <p><strong>[Client Name]</strong><br>[Client Address Lines]</p>
        <p>GSTIN: [Client GSTIN]</p>
      </div>
    </div>
    <p><strong>Place Of Supply:</strong> [Client State]</p>
    <div class="invoice-info">
      <div><strong>Invoice Date:</strong> [Invoice Date]</div>
      <div><strong>Terms:</strong> Due on Receipt</div>
      <div><strong>Due Date:</strong> [Invoice Date]</div>
    </div>
    <table>
      <thead>
        <tr><th>#</th><th>Item &amp; Description</th><th>HSN/SAC</th><th>Qty</th>
            <th>Rate</th><th>CGST</th><th>SGST</th><th>Amount</th></tr>
      </thead>
      <tbody>
        <tr><td>1</td><td><strong>[Engagement Remarks]</strong><br><small>Professional services rendered.</small></td>
            <td>[SAC Code]</td><td>1.00</td><td>[Sub Total]</td><td>{{CGST}}</td><td>{{SGST}}</td><td>[Sub Total]</td></tr>
      </tbody>
    </table>
    <div class="totals">
      <table>
        <tr><td>Sub Total</td><td>[Sub Total]</td></tr>
        <tr><td>CGST (9.00%)</td><td>{{CGST}}</td></tr>
        <tr><td>SGST (9.00%)</td><td>{{SGST}}</td></tr>
        <tr class="total-row"><td>Total</td><td>&#8377;{{TOTAL}}</td></tr>
        <tr><td>Payment Made</td><td>(-) 0.00</td></tr>
        <tr class="total-row"><td>Balance Due</td><td>&#8377;{{TOTAL}}</td></tr>
      </table>
    </div>
    <div class="footer">
      <p><strong>Total In Words:</strong> {{TOTAL_IN_WORDS}}</p>
      <p><strong>Notes:</strong> Thanks for your business.</p>
      <p><strong>CA [Firm Name]</strong><br>Authorized Signature</p>
    </div>
  </div>
</body>
</html>
"""

INSTRUCTIONS = """\
You are an accountant producing a professional tax invoice as HTML.

- Fill the HTML template given in the input. Keep its structure, classes and
  styles; replace every [Bracketed] field with the matching value from the
  input, leaving a field empty when the value is missing.
- Keep the placeholders {{CGST}}, {{SGST}}, {{TOTAL}} and {{TOTAL_IN_WORDS}}
  exactly as written. They are filled in afterwards.
- The single line item is the engagement remarks at the engagement fees,
  quantity 1.
- recipientEmail is the client's e-mail address.
- The subject is "Invoice from <Firm Name> - <Invoice Number>".
Call get_invoice_data only if you need details that are not in the input.
"""


@dataclass(frozen=True)
class InvoiceAmounts:
    sub_total: Decimal
    cgst: Decimal
    sgst: Decimal
    total: Decimal


def invoice_number(engagement_id: str, today: date) -> str:
    return f"INV-{today.year}-{engagement_id[:5].upper()}"


def gst_breakdown(fees: float | None) -> InvoiceAmounts:
    """CGST and SGST at 9% each, everything rounded half-up to paise."""
    sub_total = Decimal(str(fees or 0)).quantize(CENT, rounding=ROUND_HALF_UP)
    cgst = (sub_total * GST_RATE).quantize(CENT, rounding=ROUND_HALF_UP)
    sgst = cgst
    return InvoiceAmounts(sub_total=sub_total, cgst=cgst, sgst=sgst, total=sub_total + cgst + sgst)


def _below_hundred(n: int) -> list[str]:
    if n < 20:
        return [_ONES[n]] if n else []
    return [_TENS[n // 10]] + ([_ONES[n % 10]] if n % 10 else [])


def _integer_words(n: int) -> list[str]:
    words: list[str] = []
    for scale, name in _SCALES:
        if n >= scale:
            # Crores can exceed 99, so the multiplier may need its own grouping.
            words += _integer_words(n // scale) + [name]
            n %= scale
    return words + _below_hundred(n)


def number_to_words(n: int) -> str:
    """Spell a whole number with Indian grouping: 150000 -> 'One Lakh Fifty Thousand'."""
    return " ".join(_integer_words(n)) if n else "Zero"


def amount_in_words(amount: Decimal) -> str:
    """'Indian Rupee ... Only', with paise when the amount is fractional."""
    rupees = int(amount)
    paise = int((amount - rupees) * 100)
    words = f"Indian Rupee {number_to_words(rupees)}"
    if paise:
        words += f" and {number_to_words(paise)} Paise"
    return f"{words} Only"


def fill_amounts(html: str, amounts: InvoiceAmounts) -> str:
    replacements = {
        "{{CGST}}": f"{amounts.cgst:.2f}",
        "{{SGST}}": f"{amounts.sgst:.2f}",
        "{{TOTAL}}": f"{amounts.total:.2f}",
        "{{TOTAL_IN_WORDS}}": amount_in_words(amounts.total),
    }
    for placeholder, value in replacements.items():
        html = html.replace(placeholder, value)
    return html


class GenerateInvoiceFlow(Flow[GenerateInvoiceInput, GenerateInvoiceOutput]):
    name = "generate_invoice"
    description = "Render the tax invoice for an engagement as HTML"
    input_model = GenerateInvoiceInput
    output_model = GenerateInvoiceOutput
    instructions = INSTRUCTIONS
    tools = GENERATE_INVOICE_TOOLS

    async def run(self, request: GenerateInvoiceInput) -> GenerateInvoiceOutput:
        data = await get_invoice_data(
            self.tool_context(), EngagementRef(engagement_id=request.engagement_id)
        )
        if not data.found:
            raise MissingReferenceError(
                ENGAGEMENTS,
                request.engagement_id,
                f"Could not retrieve the engagement, client and firm for '{request.engagement_id}'",
            )
        engagement, client, firm = data.engagement, data.client, data.firm
        if not client.has_usable_email:
            raise MissingReferenceError(
                CLIENTS, client.id, f"Client '{client.id}' does not have a valid email address"
            )

        today = self.clock()
        number = invoice_number(engagement.id, today.date())
        amounts = gst_breakdown(engagement.fees)

        answer = await self.infer({
            "invoiceNumber": number,
            "invoiceDate": today.strftime("%d/%m/%Y"),
            "sacCode": SAC_CODE,
            "subTotal": f"{amounts.sub_total:.2f}",
            "firm": firm.to_document(),
            "client": client.to_document(),
            "engagement": {
                "id": engagement.id,
                "remarks": engagement.remarks,
                "fees": engagement.fees,
            },
            "template": INVOICE_TEMPLATE,
        })

        self._logger.info("invoice_generated", invoice_number=number, total=str(amounts.total))
        return answer.model_copy(
            update={
                "recipient_email": client.mail_id,
                "html_content": fill_amounts(answer.html_content, amounts),
            }
        )
