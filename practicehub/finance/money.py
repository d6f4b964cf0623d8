"""Decimal money helpers. Amounts are quantized to cents, rounding half-up."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENTS = Decimal('0.01')
ZERO = Decimal('0.00')


def to_decimal(value, field='amount'):
    """Parse an int/float/str/Decimal. None and '' count as zero; NaN and infinities are rejected."""
    if value is None or value == '':
        return Decimal('0')
    if isinstance(value, Decimal):
        d = value
    else:
        try:
            d = Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise ValueError(f'{field} is not a number: {value!r}')
    if not d.is_finite():
        raise ValueError(f'{field} must be a finite number: {value!r}')
    return d


def quantize(value):
    try:
        return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f'amount is out of range: {value!r}')


def line_amounts(quantity, unit_price, tax_rate=0, discount_rate=0):
    """Amounts for one invoice line.

    Discount applies to the gross, tax to the discounted gross.
    Returns dict with gross, discount_amount, tax_amount, line_total.
    """
    quantity = to_decimal(quantity, 'quantity')
    unit_price = to_decimal(unit_price, 'unit_price')
    tax_rate = to_decimal(tax_rate, 'tax_rate')
    discount_rate = to_decimal(discount_rate, 'discount_rate')
    if quantity < 0 or unit_price < 0:
        raise ValueError('quantity and unit_price must not be negative')
    if not (0 <= discount_rate <= 100) or tax_rate < 0:
        raise ValueError('discount_rate must be 0-100 and tax_rate must not be negative')

    gross = quantize(quantity * unit_price)
    discount = quantize(gross * discount_rate / 100)
    tax = quantize((gross - discount) * tax_rate / 100)
    return {
        'gross': gross,
        'discount_amount': discount,
        'tax_amount': tax,
        'line_total': gross - discount + tax,
    }


def invoice_totals(lines, amount_paid=0):
    """Sum computed lines (from line_amounts) into invoice totals."""
    subtotal = sum((l['gross'] for l in lines), ZERO)
    discount = sum((l['discount_amount'] for l in lines), ZERO)
    tax = sum((l['tax_amount'] for l in lines), ZERO)
    total = subtotal - discount + tax
    paid = quantize(amount_paid)
    return {
        'subtotal': subtotal,
        'discount_amount': discount,
        'tax_amount': tax,
        'total_amount': total,
        'amount_paid': paid,
        'amount_due': max(total - paid, ZERO),
    }
