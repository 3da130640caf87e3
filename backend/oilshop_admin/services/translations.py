"""Invoice vocabulary per language and invoice language selection."""
from __future__ import annotations

from typing import Dict, Optional

DEFAULT_LANGUAGE = "de"

INVOICE_TRANSLATIONS: Dict[str, Dict[str, str]] = {
    "de": {
        "invoice": "Rechnung",
        "invoice_number": "Rechnungsnummer",
        "invoice_date": "Rechnungsdatum",
        "due_date": "Fälligkeitsdatum",
        "order_number": "Bestellnummer",
        "order_date": "Bestelldatum",
        "description": "Beschreibung",
        "quantity": "Menge",
        "unit_price": "Einzelpreis",
        "total": "Gesamt",
        "subtotal": "Zwischensumme",
        "vat": "MwSt",
        "grand_total": "Gesamtbetrag",
        "payment_details": "Zahlungsdetails",
        "account_holder": "Kontoinhaber",
        "iban": "IBAN",
        "bic": "BIC",
        "bank": "Bank",
        "payment_reference": "Verwendungszweck",
        "payment_terms": "Zahlungsziel",
        "thank_you": "Vielen Dank für Ihren Auftrag!",
        "delivery_address": "Lieferadresse",
        "billing_address": "Rechnungsadresse",
        "heating_oil_delivery": "Heizöllieferung",
        "liters": "Liter",
        "delivery_fee": "Liefergebühr",
        "due_days": "{days} Tage",
        "vat_label": "USt-IdNr.",
        "phone": "Telefon",
        "email": "E-Mail",
        "website": "Website",
        "contact": "Kontakt",
        "bank_information": "Bankinformationen",
        "business_data": "Geschäftsdaten",
        "order_confirmation": "Bestellbestätigung",
        "order_received": "Bestelleingang",
    },
    "en": {
        "invoice": "Invoice",
        "invoice_number": "Invoice Number",
        "invoice_date": "Invoice Date",
        "due_date": "Due Date",
        "order_number": "Order Number",
        "order_date": "Order Date",
        "description": "Description",
        "quantity": "Quantity",
        "unit_price": "Unit Price",
        "total": "Total",
        "subtotal": "Subtotal",
        "vat": "VAT",
        "grand_total": "Grand Total",
        "payment_details": "Payment Details",
        "account_holder": "Account Holder",
        "iban": "IBAN",
        "bic": "BIC",
        "bank": "Bank",
        "payment_reference": "Payment Reference",
        "payment_terms": "Payment terms",
        "thank_you": "Thank you for your order!",
        "delivery_address": "Delivery Address",
        "billing_address": "Billing Address",
        "heating_oil_delivery": "Heating Oil Delivery",
        "liters": "Liters",
        "delivery_fee": "Delivery Fee",
        "due_days": "{days} days",
        "vat_label": "VAT Number",
        "phone": "Phone",
        "email": "Email",
        "website": "Website",
        "contact": "Contact",
        "bank_information": "Bank Information",
        "business_data": "Business Data",
        "order_confirmation": "Order confirmation",
        "order_received": "Order received",
    },
    "fr": {
        "invoice": "Facture",
        "invoice_number": "Numéro de facture",
        "invoice_date": "Date de facture",
        "due_date": "Date d'échéance",
        "order_number": "Numéro de commande",
        "order_date": "Date de commande",
        "description": "Description",
        "quantity": "Quantité",
        "unit_price": "Prix unitaire",
        "total": "Total",
        "subtotal": "Sous-total",
        "vat": "TVA",
        "grand_total": "Total général",
        "payment_details": "Détails de paiement",
        "account_holder": "Titulaire du compte",
        "iban": "IBAN",
        "bic": "BIC",
        "bank": "Banque",
        "payment_reference": "Référence de paiement",
        "payment_terms": "Délai de paiement",
        "thank_you": "Merci pour votre commande!",
        "delivery_address": "Adresse de livraison",
        "billing_address": "Adresse de facturation",
        "heating_oil_delivery": "Livraison de fioul",
        "liters": "Litres",
        "delivery_fee": "Frais de livraison",
        "due_days": "{days} jours",
        "vat_label": "Numéro de TVA",
        "phone": "Téléphone",
        "email": "Email",
        "website": "Site web",
        "contact": "Contact",
        "bank_information": "Informations bancaires",
        "business_data": "Données d'entreprise",
        "order_confirmation": "Confirmation de commande",
        "order_received": "Commande reçue",
    },
    "es": {
        "invoice": "Factura",
        "invoice_number": "Número de factura",
        "invoice_date": "Fecha de factura",
        "due_date": "Fecha de vencimiento",
        "order_number": "Número de pedido",
        "order_date": "Fecha de pedido",
        "description": "Descripción",
        "quantity": "Cantidad",
        "unit_price": "Precio unitario",
        "total": "Total",
        "subtotal": "Subtotal",
        "vat": "IVA",
        "grand_total": "Total general",
        "payment_details": "Detalles de pago",
        "account_holder": "Titular de la cuenta",
        "iban": "IBAN",
        "bic": "BIC",
        "bank": "Banco",
        "payment_reference": "Referencia de pago",
        "payment_terms": "Plazo de pago",
        "thank_you": "¡Gracias por su pedido!",
        "delivery_address": "Dirección de entrega",
        "billing_address": "Dirección de facturación",
        "heating_oil_delivery": "Entrega de combustible",
        "liters": "Litros",
        "delivery_fee": "Tarifa de entrega",
        "due_days": "{days} días",
        "vat_label": "Número de IVA",
        "phone": "Teléfono",
        "email": "Email",
        "website": "Sitio web",
        "contact": "Contacto",
        "bank_information": "Información bancaria",
        "business_data": "Datos empresariales",
        "order_confirmation": "Confirmación del pedido",
        "order_received": "Pedido recibido",
    },
    "it": {
        "invoice": "Fattura",
        "invoice_number": "Numero fattura",
        "invoice_date": "Data fattura",
        "due_date": "Data di scadenza",
        "order_number": "Numero ordine",
        "order_date": "Data ordine",
        "description": "Descrizione",
        "quantity": "Quantità",
        "unit_price": "Prezzo unitario",
        "total": "Totale",
        "subtotal": "Subtotale",
        "vat": "IVA",
        "grand_total": "Totale generale",
        "payment_details": "Dettagli pagamento",
        "account_holder": "Intestatario conto",
        "iban": "IBAN",
        "bic": "BIC",
        "bank": "Banca",
        "payment_reference": "Riferimento pagamento",
        "payment_terms": "Termini di pagamento",
        "thank_you": "Grazie per il tuo ordine!",
        "delivery_address": "Indirizzo di consegna",
        "billing_address": "Indirizzo di fatturazione",
        "heating_oil_delivery": "Consegna gasolio",
        "liters": "Litri",
        "delivery_fee": "Tassa di consegna",
        "due_days": "{days} giorni",
        "vat_label": "Partita IVA",
        "phone": "Telefono",
        "email": "Email",
        "website": "Sito web",
        "contact": "Contatto",
        "bank_information": "Informazioni bancarie",
        "business_data": "Dati aziendali",
        "order_confirmation": "Conferma d'ordine",
        "order_received": "Ordine ricevuto",
    },
    "pl": {
        "invoice": "Faktura",
        "invoice_number": "Numer faktury",
        "invoice_date": "Data faktury",
        "due_date": "Termin płatności",
        "order_number": "Numer zamówienia",
        "order_date": "Data zamówienia",
        "description": "Opis",
        "quantity": "Ilość",
        "unit_price": "Cena jednostkowa",
        "total": "Razem",
        "subtotal": "Suma częściowa",
        "vat": "VAT",
        "grand_total": "Suma całkowita",
        "payment_details": "Szczegóły płatności",
        "account_holder": "Właściciel konta",
        "iban": "IBAN",
        "bic": "BIC",
        "bank": "Bank",
        "payment_reference": "Tytuł płatności",
        "payment_terms": "Warunki płatności",
        "thank_you": "Dziękujemy za zamówienie!",
        "delivery_address": "Adres dostawy",
        "billing_address": "Adres rozliczeniowy",
        "heating_oil_delivery": "Dostawa oleju opałowego",
        "liters": "Litry",
        "delivery_fee": "Opłata za dostawę",
        "due_days": "{days} dni",
        "vat_label": "NIP",
        "phone": "Telefon",
        "email": "Email",
        "website": "Strona internetowa",
        "contact": "Kontakt",
        "bank_information": "Informacje bankowe",
        "business_data": "Dane biznesowe",
        "order_confirmation": "Potwierdzenie zamówienia",
        "order_received": "Zamówienie przyjęte",
    },
    "nl": {
        "invoice": "Factuur",
        "invoice_number": "Factuurnummer",
        "invoice_date": "Factuurdatum",
        "due_date": "Vervaldatum",
        "order_number": "Bestelnummer",
        "order_date": "Besteldatum",
        "description": "Beschrijving",
        "quantity": "Hoeveelheid",
        "unit_price": "Eenheidsprijs",
        "total": "Totaal",
        "subtotal": "Subtotaal",
        "vat": "BTW",
        "grand_total": "Eindtotaal",
        "payment_details": "Betalingsgegevens",
        "account_holder": "Rekeninghouder",
        "iban": "IBAN",
        "bic": "BIC",
        "bank": "Bank",
        "payment_reference": "Betalingskenmerk",
        "payment_terms": "Betalingstermijn",
        "thank_you": "Dank u voor uw bestelling!",
        "delivery_address": "Leveringsadres",
        "billing_address": "Factuuradres",
        "heating_oil_delivery": "Stookolielevering",
        "liters": "Liters",
        "delivery_fee": "Leveringskosten",
        "due_days": "{days} dagen",
        "vat_label": "BTW-nummer",
        "phone": "Telefoon",
        "email": "Email",
        "website": "Website",
        "contact": "Contact",
        "bank_information": "Bankinformatie",
        "business_data": "Bedrijfsgegevens",
        "order_confirmation": "Orderbevestiging",
        "order_received": "Bestelling ontvangen",
    },
}

PRODUCT_NAMES: Dict[str, Dict[str, str]] = {
    "de": {"heating_oil": "Heizöl", "premium_heizoel": "Premium Heizöl",
           "standard_heizoel": "Standard Heizöl", "diesel": "Diesel", "gasoline": "Benzin"},
    "en": {"heating_oil": "Heating Oil", "premium_heizoel": "Premium Heating Oil",
           "standard_heizoel": "Standard Heating Oil", "diesel": "Diesel", "gasoline": "Gasoline"},
    "fr": {"heating_oil": "Fioul de chauffage", "premium_heizoel": "Fioul premium",
           "standard_heizoel": "Fioul standard", "diesel": "Diesel", "gasoline": "Essence"},
    "es": {"heating_oil": "Combustible para calefacción", "premium_heizoel": "Combustible premium",
           "standard_heizoel": "Combustible estándar", "diesel": "Diesel", "gasoline": "Gasolina"},
    "it": {"heating_oil": "Gasolio per riscaldamento", "premium_heizoel": "Gasolio premium",
           "standard_heizoel": "Gasolio standard", "diesel": "Diesel", "gasoline": "Benzina"},
    "pl": {"heating_oil": "Olej opałowy", "premium_heizoel": "Olej opałowy premium",
           "standard_heizoel": "Olej opałowy standardowy", "diesel": "Diesel", "gasoline": "Benzyna"},
    "nl": {"heating_oil": "Stookolie", "premium_heizoel": "Premium stookolie",
           "standard_heizoel": "Standaard stookolie", "diesel": "Diesel", "gasoline": "Benzine"},
}

COUNTRY_LANGUAGES = {
    "DE": "de", "AT": "de", "CH": "de",
    "US": "en", "GB": "en", "CA": "en", "AU": "en",
    "FR": "fr", "BE": "fr",
    "ES": "es",
    "IT": "it",
    "PL": "pl",
    "NL": "nl",
}

SUPPORTED_LANGUAGES = tuple(INVOICE_TRANSLATIONS)


def is_supported(language: Optional[str]) -> bool:
    return bool(language) and language.lower() in INVOICE_TRANSLATIONS


def get_translations(language: Optional[str]) -> Dict[str, str]:
    """Vocabulary for ``language``; German when unknown."""
    if is_supported(language):
        return INVOICE_TRANSLATIONS[language.lower()]
    return INVOICE_TRANSLATIONS[DEFAULT_LANGUAGE]


def product_name(product: Optional[str], language: str) -> Optional[str]:
    if not product:
        return None
    names = PRODUCT_NAMES.get(language, PRODUCT_NAMES[DEFAULT_LANGUAGE])
    return names.get(product)


def resolve_language(requested: Optional[str], shop=None, default: str = DEFAULT_LANGUAGE) -> str:
    """Pick the invoice language.

    Order: requested language, the shop's language, the language of the
    shop's country, then ``default``. Unsupported values are skipped.
    """
    if is_supported(requested):
        return requested.lower()
    shop_language = getattr(shop, "language", None)
    if is_supported(shop_language):
        return shop_language.lower()
    country = (getattr(shop, "country_code", None) or "").upper()
    if country in COUNTRY_LANGUAGES:
        return COUNTRY_LANGUAGES[country]
    return default if is_supported(default) else DEFAULT_LANGUAGE


__all__ = [
    "DEFAULT_LANGUAGE",
    "INVOICE_TRANSLATIONS",
    "SUPPORTED_LANGUAGES",
    "get_translations",
    "product_name",
    "resolve_language",
]
