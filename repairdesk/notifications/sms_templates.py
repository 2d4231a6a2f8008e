"""
SMS message templates.

Every message is kept within 160 characters. Punctuation is normalized to
plain ASCII; longer messages are abbreviated and, as a last resort,
truncated. Serbian letters (č, ć, š, ž, đ) are kept, so a message containing
them goes out as UCS-2 and the provider may bill it as several segments.
"""
import logging
import re

logger = logging.getLogger(__name__)

SMS_MAX_LENGTH = 160
COMPANY_PHONE = '067051141'

TEMPLATES = {}

ABBREVIATIONS = [
    (re.compile(r'Tehničar:'), 'Teh:'),
    (re.compile(r'Klijent:'), 'Kl:'),
    (re.compile(r'Servis'), 'Srv'),
    (re.compile(r'promenjeno:'), '->'),
    (re.compile(r'uspešno završen'), 'završen'),
    (re.compile(r'Tel: 067051141'), 'T:067051141'),
    (re.compile(r'Hvala na saradnji!'), 'Hvala!'),
    (re.compile(r'kontaktirati'), 'kontakt.'),
    (re.compile(r'Pristice za'), 'za'),
    (re.compile(r'dana(?=\s)'), 'd'),
    (re.compile(r'testiranje'), 'test'),
    (re.compile(r'kalibracija'), 'kalibr'),
    (re.compile(r'kompletno'), 'kompl'),
    (re.compile(r'potpuno'), 'potp'),
    (re.compile(r'izvršeno'), 'izvrš'),
    (re.compile(r'detaljnim'), 'detalj'),
    (re.compile(r'sistema'), 'sist'),
    (re.compile(r'Zamenjen'), 'Zamen'),
]


class TemplateData(dict):
    """Template values; missing keys render as empty strings"""

    def __missing__(self, key):
        return ''

    def get_or(self, key, default):
        value = self[key]
        return value if value not in ('', None) else default


def normalize_sms(message):
    """Replace typographic punctuation with ASCII and collapse whitespace"""
    cleaned = re.sub(r'[“”‘’]', '"', message)
    cleaned = re.sub(r'[—–]', '-', cleaned)
    cleaned = cleaned.replace('…', '...')
    cleaned = re.sub(r'\r?\n\s*\r?\n', ' ', cleaned)
    cleaned = re.sub(r'\r?\n', ' ', cleaned)
    cleaned = re.sub(r'\s{2,}', ' ', cleaned)
    return cleaned.strip()


def shorten_sms(message):
    shortened = re.sub(r'Model:\s+([^\s,]+)', r'Model: \1', message)
    shortened = re.sub(r'\s+\([^)]{10,}\)', '', shortened)
    for pattern, replacement in ABBREVIATIONS:
        shortened = pattern.sub(replacement, shortened)
    if len(shortened) > SMS_MAX_LENGTH:
        shortened = shortened[:SMS_MAX_LENGTH - 3] + '...'
    return shortened


def validate_sms_length(message, template_name='sms'):
    """Normalize a message and keep it within SMS_MAX_LENGTH characters"""
    cleaned = normalize_sms(message)
    if len(cleaned) <= SMS_MAX_LENGTH:
        logger.debug(f"SMS {template_name}: {len(cleaned)} characters")
        return cleaned

    shortened = shorten_sms(cleaned)
    logger.info(f"SMS {template_name}: shortened {len(cleaned)} -> {len(shortened)} characters")
    return shortened


def template(*names):
    """Register a template function under one or more template keys"""
    def decorator(func):
        for name in names:
            TEMPLATES[name] = func
        func.template_name = names[0]
        return func
    return decorator


def _has_positive_amount(value):
    try:
        return float(value) > 0
    except (TypeError, ValueError):
        return False


def _urgency_prefix(urgency, urgent, high):
    if urgency == 'urgent':
        return urgent
    if urgency == 'high':
        return high
    return ''


# Administrator messages

@template('admin_status_change')
def admin_status_change(d):
    return (f"PROMENA - Servis #{d['service_id']}: {d['client_name']} ({d['client_phone']}), "
            f"{d['device_type']} {d['manufacturer_name']}, {d['old_status']}->{d['new_status']}, "
            f"Tehnicar: {d['technician_name']}")


@template('admin_new_service')
def admin_new_service(d):
    return (f"NOVI SERVIS #{d['service_id']} - {d['client_name']} ({d['client_phone']}), "
            f"{d['device_type']} {d['manufacturer_name']}, Model: {d.get_or('device_model', 'N/A')}, "
            f"Kreirao: {d.get_or('created_by', 'Upravljanje')}")


@template('admin_technician_assigned')
def admin_technician_assigned(d):
    return (f"DODELJEN - {d['technician_name']} ({d.get_or('technician_phone', 'N/A')}) za servis "
            f"#{d['service_id']}: {d['client_name']} ({d['client_phone']}), {d['device_type']} "
            f"{d['manufacturer_name']}")


@template('admin_parts_ordered')
def admin_parts_ordered(d):
    prefix = _urgency_prefix(d['urgency'], '[HITNO] ', '[BRZO] ')
    return (f"{prefix}PORUCEN DEO - {d['part_name']} za servis #{d['service_id']}: {d['client_name']}, "
            f"{d['device_type']}, Tehnicar: {d['technician_name']}, Vreme: {d.get_or('estimated_date', '5-7d')}")


@template('admin_parts_arrived')
def admin_parts_arrived(d):
    return (f"STIGAO DEO - Servis #{d['service_id']}, Deo: {d['part_name']}, Klijent: {d['client_name']}, "
            f"Tehnicar: {d['technician_name']}. Moze ugradnja.")


@template('admin_removed_parts')
def admin_removed_parts(d):
    return (f"UKLONJENI DELOVI - Servis #{d['service_id']}, Tehnicar: {d['technician_name']}, "
            f"Klijent: {d['client_name']}, Uredjaj: {d['device_type']}")


@template('admin_klijent_nije_dostupan')
def admin_client_unavailable(d):
    return (f"KLIJENT NEDOSTUPAN - Servis #{d['service_id']}, Tehnicar: {d['technician_name']}, "
            f"Klijent: {d.get_or('client_name', 'Nepoznat klijent')}, "
            f"Uredjaj: {d.get_or('device_type', 'Nepoznat uredjaj')}")


# Client messages

@template('client_service_completed', 'service_completed')
def client_service_completed(d):
    cost_info = f", cena: {d['cost']}€" if _has_positive_amount(d['cost']) else ''
    return (f"Servis #{d['service_id']} za {d['device_type']} {d['manufacturer_name']} uspešno završen. "
            f"Tehnicar: {d['technician_name']}{cost_info}. Hvala! Tel: {COMPANY_PHONE}")


@template('service_started', 'client_service_started')
def client_service_started(d):
    return (f"Poštovani {d['client_name']}, tehničar {d['technician_name']} je započeo rad na servisu "
            f"#{d['service_id']} ({d['device_type']}). Tel: {COMPANY_PHONE}")


@template('client_not_available', 'klijent_nije_dostupan')
def client_not_available(d):
    return (f"Tehničar {d['technician_name']} pokušava kontakt za servis #{d['service_id']}. "
            f"Pozovite {COMPANY_PHONE} za novi termin.")


@template('client_spare_part_ordered')
def client_spare_part_ordered(d):
    urgency = _urgency_prefix(d['urgency'], ' HITNO', ' BRZO')
    return (f"Porucen deo \"{d['part_name']}\" za vas {d['device_type']} {d['manufacturer_name']}{urgency}. "
            f"Pristice za {d.get_or('estimated_date', '5-7 dana')}. Tel: {COMPANY_PHONE}")


@template('client_spare_part_arrived')
def client_spare_part_arrived(d):
    return (f"Deo {d['part_name']} za servis #{d['service_id']} je stigao. "
            f"Tehničar ce vas kontaktirati u 24h. Tel: {COMPANY_PHONE}")


@template('service_status_changed', 'client_service_status_changed')
def client_service_status_changed(d):
    return (f"Stanje servisa #{d['service_id']} promenjeno: {d['new_status']}. "
            f"Tehničar: {d['technician_name']}. Tel: {COMPANY_PHONE}")


@template('client_status_update')
def client_status_update(d):
    notes = f" - {d['technician_notes']}" if d['technician_notes'] else ''
    return (f"Srv #{d['service_id']}: {d['status_description']}. Teh: {d['technician_name']}{notes}. "
            f"T:{COMPANY_PHONE}")


# Business partner messages

@template('business_partner_assigned')
def business_partner_assigned(d):
    return (f"DODELJEN - Servis #{d['service_id']}: {d['client_name']} ({d['client_phone']}), "
            f"{d['device_type']} {d['manufacturer_name']}, Tehnicar: {d['technician_name']} "
            f"({d.get_or('technician_phone', 'N/A')})")


@template('business_partner_completed')
def business_partner_completed(d):
    return (f"Servis #{d['service_id']} za {d['client_name']} ({d['device_type']}) je završen. "
            f"Tehničar: {d['technician_name']}. Hvala na saradnji!")


@template('business_partner_service_completed')
def business_partner_service_completed(d):
    return (f"Servis #{d['service_id']} - {d['client_name']} ({d['device_type']}) završen. "
            f"Tehničar: {d['technician_name']}. Hvala na saradnji!")


@template('business_partner_parts_ordered')
def business_partner_parts_ordered(d):
    return (f"Porucen deo {d['part_name']} za servis #{d['service_id']} ({d['client_name']}, "
            f"{d['device_type']}). Pristice za {d.get_or('estimated_date', '5-7 dana')}.")


@template('business_partner_status_changed')
def business_partner_status_changed(d):
    return (f"Stanje servisa #{d['service_id']} promenjeno: {d['old_status']} -> {d['new_status']}. "
            f"Klijent: {d['client_name']}, Tehničar: {d['technician_name']}.")


# Technician messages

@template('technician_new_service')
def technician_new_service(d):
    return (f"NOVI SERVIS #{d['service_id']} - {d['client_name']} ({d['client_phone']}), "
            f"{d['device_type']} {d['manufacturer_name']}, Model: {d.get_or('device_model', 'N/A')}. "
            f"Problem: {d.get_or('problem_description', 'Proveri sistem')}")


@template('technician_part_arrived')
def technician_part_arrived(d):
    return (f"Stigao deo {d['part_name']} za servis #{d['service_id']}. Klijent: {d['client_name']}. "
            f"Možete ugrađivati.")


# Supplier messages (Com Plus brands)

@template('supplier_status_changed')
def supplier_status_changed(d):
    return (f"{d['manufacturer_name']} servis #{d['service_id']} - {d['client_name']}, "
            f"Stanje: {d['old_status']} -> {d['new_status']}, Tehničar: {d['technician_name']}")


@template('supplier_parts_ordered')
def supplier_parts_ordered(d):
    prefix = _urgency_prefix(d['urgency'], 'HITNO', 'BRZO')
    return (f"{prefix} Deo poručen za {d['manufacturer_name']} servis #{d['service_id']}. "
            f"Klijent: {d['client_name']}, Deo: {d['part_name']}, Naručio: {d['ordered_by']}")


# Parts allocated to technicians

@template('client_parts_allocated')
def client_parts_allocated(d):
    return (f"Deo {d['part_name']} ({d.get_or('quantity', '1')} kom) dodeljen tehničaru "
            f"{d['technician_name']} za vas uredjaj. Servis #{d['service_id']}")


@template('admin_parts_allocated')
def admin_parts_allocated(d):
    return (f"UPRAVLJANJE: Deo {d['part_name']} ({d.get_or('quantity', '1')} kom) dodeljen "
            f"{d['technician_name']} za servis #{d['service_id']} - {d['client_name']}")


@template('business_partner_parts_allocated')
def business_partner_parts_allocated(d):
    return (f"Deo {d['part_name']} ({d.get_or('quantity', '1')} kom) dodeljen za servis "
            f"#{d['service_id']} - {d['client_name']}. Tehničar: {d['technician_name']}")


# Beko service reports

@template('servis_zavrsen_beko')
def beko_service_completed(d):
    return (f"Pozdrav {d['client_name']}! Vaš {d['device_type']} servis #{d['service_id']} je završen. "
            f"Serviser: {d['technician_name']}. Trošak: {d['cost']}€. Hvala! - FS Todosijević")


@template('servis_komerc_dnevni')
def beko_daily_report(d):
    return (f"Servis Komerc dnevni izveštaj: {d.get_or('total_services', 0)} Beko servisa, "
            f"{d.get_or('total_clients', 0)} klijenata, {d.get_or('total_parts', 0)} delova. - FS Todosijević")


# Automatic protocol messages

@template('protocol_client_unavailable_to_client')
def protocol_client_unavailable_to_client(d):
    return (f"Pozdrav {d['client_name']}! Nismo Vas zatekli kod kuce za servis #{d['service_id']} "
            f"({d['device_type']}). Kontaktirajte {COMPANY_PHONE} za novi termin. - Frigo Sistem")


@template('protocol_client_unavailable_to_admin')
def protocol_client_unavailable_to_admin(d):
    return (f"NEDOSTUPAN KLIJENT - Servis #{d['service_id']}: {d['client_name']} ({d['client_phone']}), "
            f"{d['device_type']}, Tehnicar: {d['technician_name']}. Razlog: {d['unavailable_reason']}")


@template('protocol_client_unavailable_to_partner')
def protocol_client_unavailable_to_partner(d):
    return (f"Klijent {d['client_name']} nedostupan za servis #{d['service_id']} ({d['device_type']}). "
            f"Tehnicar: {d['technician_name']}. Potrebno novo zakazivanje. - Frigo Sistem")


@template('protocol_service_assigned_to_client')
def protocol_service_assigned_to_client(d):
    return (f"Pozdrav {d['client_name']}! Vas servis #{d['service_id']} ({d['device_type']}) je dodeljen "
            f"tehnicaru {d['technician_name']} ({d['technician_phone']}). - Frigo Sistem")


@template('protocol_service_assigned_to_admin')
def protocol_service_assigned_to_admin(d):
    return (f"DODELA - Servis #{d['service_id']} dodeljen: {d['technician_name']} za {d['client_name']} "
            f"({d['client_phone']}), {d['device_type']}. Partner: {d.get_or('business_partner_name', 'N/A')}")


@template('protocol_service_assigned_to_partner')
def protocol_service_assigned_to_partner(d):
    return (f"Vas zahtev #{d['service_id']} za {d['client_name']} ({d['device_type']}) je dodeljen "
            f"tehnicaru {d['technician_name']}. Mozete pratiti napredak. - Frigo Sistem")


@template('protocol_parts_ordered_to_client')
def protocol_parts_ordered_to_client(d):
    return (f"Pozdrav {d['client_name']}! Porucen je rezervni deo {d['part_name']} za Vas servis "
            f"#{d['service_id']} ({d['device_type']}). Pristice za {d.get_or('estimated_date', '5-7 dana')}. "
            f"- Frigo Sistem")


@template('protocol_parts_ordered_to_admin')
def protocol_parts_ordered_to_admin(d):
    return (f"PORUCEN DEO - {d['part_name']} za servis #{d['service_id']}: {d['client_name']}, "
            f"{d['device_type']}, Tehnicar: {d['technician_name']}, "
            f"Partner: {d.get_or('business_partner_name', 'N/A')}")


@template('protocol_parts_ordered_to_partner')
def protocol_parts_ordered_to_partner(d):
    return (f"Rezervni deo {d['part_name']} je porucen za servis #{d['service_id']} ({d['client_name']}, "
            f"{d['device_type']}). Pristice za {d.get_or('estimated_date', '5-7 dana')}. - Frigo Sistem")


@template('protocol_repair_refused_to_client')
def protocol_repair_refused_to_client(d):
    return (f"Postovani {d['client_name']}, zabelezili smo da ne zelite popravku servisa "
            f"#{d['service_id']} ({d['device_type']}). Kontakt: {COMPANY_PHONE}. - Frigo Sistem")


@template('protocol_repair_refused_to_admin')
def protocol_repair_refused_to_admin(d):
    return (f"ODBIO POPRAVKU - {d['client_name']} ({d['client_phone']}) odbio servis #{d['service_id']} "
            f"({d['device_type']}). Tehnicar: {d['technician_name']}")


@template('protocol_repair_refused_to_partner')
def protocol_repair_refused_to_partner(d):
    return (f"Klijent {d['client_name']} je odbio popravku za servis #{d['service_id']} "
            f"({d['device_type']}). Servis zatvoren. - Frigo Sistem")


@template('protocol_service_created_to_client')
def protocol_service_created_to_client(d):
    return (f"Pozdrav {d['client_name']}! Kreiran je servis #{d['service_id']} za Vas {d['device_type']}. "
            f"Kontakticemo Vas za termin. Tel: {COMPANY_PHONE} - Frigo Sistem")


@template('protocol_service_created_to_admin')
def protocol_service_created_to_admin(d):
    return (f"NOVI SERVIS #{d['service_id']} - {d['client_name']} ({d['client_phone']}), {d['device_type']}, "
            f"Kreirao: {d.get_or('business_partner_name', d['created_by'])}")


@template('protocol_service_created_to_partner')
def protocol_service_created_to_partner(d):
    return (f"Potvrda: Kreiran servis #{d['service_id']} za {d['client_name']} ({d['device_type']}). "
            f"Dodelit cemo tehnicara uskoro. - Frigo Sistem")


def generate_sms(template_type, data):
    """
    Build the SMS body for a template key.

    Unknown keys produce a generic notice so that a typo never blocks a send.
    """
    values = TemplateData(data or {})
    func = TEMPLATES.get(template_type)
    if func is None:
        logger.error(f"Unknown SMS template type: {template_type}")
        return f"Obaveštenje o servisu #{values['service_id']}. Tel: {COMPANY_PHONE}"
    return validate_sms_length(func(values), template_type)


def available_templates():
    return sorted(TEMPLATES)


def check_template_lengths(sample):
    """
    Render every template with sample data.

    Returns a list of dicts: template, raw_length, final_length, shortened.
    """
    results = []
    values = TemplateData(sample)
    for name in available_templates():
        raw = normalize_sms(TEMPLATES[name](values))
        final = generate_sms(name, sample)
        results.append({
            'template': name,
            'raw_length': len(raw),
            'final_length': len(final),
            'shortened': len(raw) > SMS_MAX_LENGTH,
            'message': final,
        })
    return results
