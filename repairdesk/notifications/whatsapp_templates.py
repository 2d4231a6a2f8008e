"""
WhatsApp Business message templates, keyword auto-replies and Montenegro
formatting helpers.

Templates use {{VARIABLE}} placeholders.
"""
import re
from decimal import Decimal

SIGNATURE = '*FRIGO SISTEM TODOSIJEVIĆ*'
SUPPORT_PHONE = '+382 67 051 141'

SERVICE_TEMPLATES = {
    'SERVICE_REQUEST_CONFIRMED': {
        'id': 'service_request_confirmed',
        'name': 'Potvrda zahteva za servis',
        'message': f"""🔧 {SIGNATURE}

Poštovani/a {{{{CLIENT_NAME}}}},

Vaš zahtev za servis je uspešno primljen:

📋 *Detalji servisa:*
• Uređaj: {{{{APPLIANCE_TYPE}}}} {{{{BRAND}}}}
• Problem: {{{{ISSUE_DESCRIPTION}}}}
• Adresa: {{{{ADDRESS}}}}
• Broj zahteva: #{{{{SERVICE_ID}}}}

👨‍🔧 Naš tehničar će Vas kontaktirati u roku od 2 radna sata radi zakazivanja termina.

📞 Za hitne slučajeve: {SUPPORT_PHONE}
🌐 www.frigosistemtodosijevic.me

Hvala Vam na poverenju! 🙏""",
        'variables': ['CLIENT_NAME', 'APPLIANCE_TYPE', 'BRAND', 'ISSUE_DESCRIPTION', 'ADDRESS', 'SERVICE_ID'],
    },
    'APPOINTMENT_SCHEDULED': {
        'id': 'appointment_scheduled',
        'name': 'Potvrda zakazanog termina',
        'message': f"""📅 *TERMIN ZAKAZAN*

Poštovani/a {{{{CLIENT_NAME}}}},

Vaš termin za servis je zakazan:

🗓️ *Datum:* {{{{DATE}}}}
⏰ *Vreme:* {{{{TIME}}}}
👨‍🔧 *Tehničar:* {{{{TECHNICIAN_NAME}}}}
📍 *Adresa:* {{{{ADDRESS}}}}

📋 *Servis:* {{{{APPLIANCE_TYPE}}}} - {{{{ISSUE_DESCRIPTION}}}}

⚠️ *Molimo Vas da budete dostupni na navedenom terminu.*

Za izmene termina kontaktirajte nas:
📞 {SUPPORT_PHONE}

{SIGNATURE}""",
        'variables': ['CLIENT_NAME', 'DATE', 'TIME', 'TECHNICIAN_NAME', 'ADDRESS', 'APPLIANCE_TYPE',
                      'ISSUE_DESCRIPTION'],
    },
    'TECHNICIAN_ON_WAY': {
        'id': 'technician_on_way',
        'name': 'Tehničar je na putu',
        'message': f"""🚐 *TEHNIČAR JE NA PUTU*

Poštovani/a {{{{CLIENT_NAME}}}},

Naš tehničar {{{{TECHNICIAN_NAME}}}} je na putu ka Vašoj adresi.

⏱️ *Očekivano vreme dolaska:* {{{{ESTIMATED_ARRIVAL}}}}
📍 *Vaša adresa:* {{{{ADDRESS}}}}

👨‍🔧 Tehničar će Vas kontaktirati kada stigne ispred zgrade.

{SIGNATURE}
📞 {SUPPORT_PHONE}""",
        'variables': ['CLIENT_NAME', 'TECHNICIAN_NAME', 'ESTIMATED_ARRIVAL', 'ADDRESS'],
    },
    'SERVICE_COMPLETED': {
        'id': 'service_completed',
        'name': 'Servis je završen',
        'message': f"""✅ *SERVIS USPEŠNO ZAVRŠEN*

Poštovani/a {{{{CLIENT_NAME}}}},

Vaš uređaj je uspešno popravljen:

🔧 *Izvršeni radovi:*
{{{{WORK_PERFORMED}}}}

💰 *Ukupna cena:* {{{{TOTAL_COST}}}} EUR
💳 *Način plaćanja:* {{{{PAYMENT_METHOD}}}}

📝 *Garancija:* {{{{WARRANTY_PERIOD}}}} meseci na izvršene radove

⭐ Molimo Vas da ocenite našu uslugu na Google-u.

Hvala Vam na poverenju!

{SIGNATURE}
📞 {SUPPORT_PHONE}""",
        'variables': ['CLIENT_NAME', 'WORK_PERFORMED', 'TOTAL_COST', 'PAYMENT_METHOD', 'WARRANTY_PERIOD'],
    },
    'PARTS_NEEDED': {
        'id': 'parts_needed',
        'name': 'Potrebni rezervni delovi',
        'message': f"""🔧 *POTREBNI REZERVNI DELOVI*

Poštovani/a {{{{CLIENT_NAME}}}},

Nakon dijagnostike Vašeg {{{{APPLIANCE_TYPE}}}}, ustanovljeno je:

🔍 *Problem:* {{{{DIAGNOSIS}}}}

🛠️ *Potrebni delovi:*
{{{{PARTS_LIST}}}}

💰 *Procenjena cena delova:* {{{{PARTS_COST}}}} EUR
💳 *Cena rada:* {{{{LABOR_COST}}}} EUR
💵 *UKUPNO:* {{{{TOTAL_COST}}}} EUR

⏳ *Vreme nabavke:* {{{{DELIVERY_TIME}}}}

Da li želite da nastavimo sa popravkom?
Odgovorite sa DA ili NE.

{SIGNATURE}""",
        'variables': ['CLIENT_NAME', 'APPLIANCE_TYPE', 'DIAGNOSIS', 'PARTS_LIST', 'PARTS_COST', 'LABOR_COST',
                      'TOTAL_COST', 'DELIVERY_TIME'],
    },
    'SERVICE_REFUSED': {
        'id': 'service_refused',
        'name': 'Klijent odbija popravku',
        'message': f"""❌ *POPRAVKA OTKAZANA*

Poštovani/a {{{{CLIENT_NAME}}}},

Razumemo Vašu odluku da ne nastavite sa popravkom.

📋 *Detalji:*
• Uređaj: {{{{APPLIANCE_TYPE}}}}
• Dijagnoza: {{{{DIAGNOSIS}}}}
• Razlog otkazivanja: {{{{REFUSAL_REASON}}}}

💰 *Naplaćujemo samo:*
• Izlazak i dijagnostiku: {{{{DIAGNOSTIC_FEE}}}} EUR

💳 *Način plaćanja:* {{{{PAYMENT_METHOD}}}}

📝 *Napomene:*
• Uređaj ostaje u istom stanju
• Dijagnoza važi 30 dana
• Možete se predomisliti u roku od 7 dana

Hvala Vam na razumevanju.

{SIGNATURE}
📞 {SUPPORT_PHONE}""",
        'variables': ['CLIENT_NAME', 'APPLIANCE_TYPE', 'DIAGNOSIS', 'REFUSAL_REASON', 'DIAGNOSTIC_FEE',
                      'PAYMENT_METHOD'],
    },
    'PHOTOS_UPLOADED': {
        'id': 'photos_uploaded',
        'name': 'Fotografije poslate',
        'message': f"""📸 *FOTOGRAFIJE POSLATE*

Poštovani/a {{{{CLIENT_NAME}}}},

Naš tehničar {{{{TECHNICIAN_NAME}}}} je poslao fotografije Vašeg {{{{APPLIANCE_TYPE}}}}:

🔍 *Status:* {{{{REPAIR_STATUS}}}}
📷 *Broj fotografija:* {{{{PHOTO_COUNT}}}}

Možete pogledati fotografije na linku koji će biti poslat putem email-a.

{{{{ADDITIONAL_MESSAGE}}}}

{SIGNATURE}""",
        'variables': ['CLIENT_NAME', 'TECHNICIAN_NAME', 'APPLIANCE_TYPE', 'REPAIR_STATUS', 'PHOTO_COUNT',
                      'ADDITIONAL_MESSAGE'],
    },
}

AUTO_REPLIES = {
    'BUSINESS_HOURS': {
        'keywords': ['radno vreme', 'radimo', 'otvoreno', 'zatvoreno', 'kada radite'],
        'message': f"""🕒 *RADNO VREME*

📅 *Ponedeljak - Petak:* 08:00 - 17:00h
📅 *Subota:* 08:00 - 14:00h
📅 *Nedelja:* ZATVORENO

🚨 *Hitni servis (24/7):*
📞 {SUPPORT_PHONE}

📍 *Adresa:*
Podgorica, Crna Gora

{SIGNATURE}""",
    },
    'PRICING_INFO': {
        'keywords': ['cena', 'cene', 'cenovnik', 'koliko košta', 'tarifa'],
        'message': f"""💰 *CENOVNIK USLUGA*

🔧 *Osnovne usluge:*
• Izlazak i dijagnostika: 15 EUR
• Čišćenje klima uređaja: 25-40 EUR
• Popravka frižidera: 30-80 EUR
• Popravka veš mašine: 35-90 EUR

⚡ *Hitni servis (van radnog vremena):*
• Dodatno +50% na cenu usluge

📋 *Rezervni delovi:*
• Po fabričkom cenovniku
• Garancija 12 meseci

📞 Za tačnu procenu kontaktirajte:
{SUPPORT_PHONE}

{SIGNATURE}""",
    },
    'SUPPORTED_BRANDS': {
        'keywords': ['brendovi', 'marka', 'marke', 'koju marku', 'servis marka'],
        'message': f"""🏭 *BRENDOVI KOJE SERVISIRAMO*

❄️ *Frižideri & Zamrzivači:*
Samsung, LG, Gorenje, Beko, Bosch, Siemens, Whirlpool, Electrolux

🌪️ *Klima uređaji:*
Mitsubishi, Daikin, Samsung, LG, Gree, Hisense, Panasonic

👕 *Veš mašine:*
Bosch, Samsung, LG, Gorenje, Beko, Whirlpool, Miele

🍽️ *Sudmašine:*
Bosch, Siemens, Gorenje, Beko, Samsung

🔥 *Šporeti & Rerne:*
Gorenje, Beko, Bosch, Samsung, Electrolux

📞 Za ostale brendove kontaktirajte: {SUPPORT_PHONE}

{SIGNATURE}""",
    },
    'CONTACT_INFO': {
        'keywords': ['kontakt', 'telefon', 'broj', 'adresa', 'gde se nalazite'],
        'message': f"""📞 *KONTAKT INFORMACIJE*

🏢 {SIGNATURE}

📱 *Telefon/WhatsApp:* {SUPPORT_PHONE}
📧 *Email:* info@frigosistemtodosijevic.me
🌐 *Website:* www.frigosistemtodosijevic.me

📍 *Adresa:*
Podgorica, Crna Gora

🕒 *Radno vreme:*
Pon-Pet: 08:00-17:00h
Subota: 08:00-14:00h

🚨 *Hitni servis: 24/7*

Kontaktirajte nas bilo kada! 💬""",
    },
    'HELP': {
        'keywords': ['help', 'pomoć', 'pomoc', 'pomagaj', 'šta mogu', 'opcije'],
        'message': f"""🤖 *FRIGO SISTEM TODOSIJEVIĆ - POMOĆ*

Evo šta možete da radite:

📋 *Zakazivanje servisa:*
Pošaljite "SERVIS" + opis problema

💰 *Informacije o cenama:*
Pošaljite "CENE" ili "CENOVNIK"

🏭 *Brendovi koje servisiramo:*
Pošaljite "BRENDOVI" ili "MARKE"

📞 *Kontakt informacije:*
Pošaljite "KONTAKT"

🕒 *Radno vreme:*
Pošaljite "RADNO VREME"

👨‍💼 Za direktan razgovor sa operaterom:
📞 {SUPPORT_PHONE}

*Hvala što ste izabrali naše usluge!* 🙏""",
    },
}

BUSINESS_PARTNER_TEMPLATES = {
    'SERVICE_ASSIGNED': {
        'id': 'bp_service_assigned',
        'name': 'Servis dodeljen partneru',
        'message': f"""🤝 *NOVI SERVIS ZAHTEV*

Poštovani partneru,

Dodeljen Vam je novi servis:

📋 *Detalji:*
• ID: #{{{{SERVICE_ID}}}}
• Klijent: {{{{CLIENT_NAME}}}}
• Telefon: {{{{CLIENT_PHONE}}}}
• Adresa: {{{{ADDRESS}}}}
• Uređaj: {{{{APPLIANCE_TYPE}}}} {{{{BRAND}}}}
• Problem: {{{{ISSUE_DESCRIPTION}}}}

⏰ *Rok:* {{{{DEADLINE}}}}

Molimo potvrdite prijem zahteva.

{SIGNATURE}""",
        'variables': ['SERVICE_ID', 'CLIENT_NAME', 'CLIENT_PHONE', 'ADDRESS', 'APPLIANCE_TYPE', 'BRAND',
                      'ISSUE_DESCRIPTION', 'DEADLINE'],
    },
}

EMERGENCY_TEMPLATES = {
    'AFTER_HOURS': {
        'id': 'after_hours',
        'name': 'Van radnog vremena',
        'message': f"""🌙 *VAN RADNOG VREMENA*

Trenutno je van našeg radnog vremena.

🕒 *Radno vreme:*
• Pon-Pet: 08:00-17:00h
• Subota: 08:00-14:00h
• Nedelja: ZATVORENO

🚨 *Za hitne slučajeve (24/7):*
📞 {SUPPORT_PHONE}

💬 Možete nam poslati poruku, odgovorićemo čim budemo dostupni.

{SIGNATURE}""",
    },
    'WEEKEND_EMERGENCY': {
        'id': 'weekend_emergency',
        'name': 'Vikend hitni slučaj',
        'message': f"""🆘 *VIKEND HITNI SERVIS*

Za hitne kvarove tokom vikenda:

⚡ *Hitni broj: {SUPPORT_PHONE}*

💰 *Vikend tarifa:*
• Izlazak: 25 EUR
• Rad: +50% na standardnu cenu

⏰ *Vreme odziva: 2-4 sata*

🚨 Hitni servis je dostupan za:
• Kvar frižidera/zamrzivača
• Kvar klima uređaja (leto)
• Curenje vode
• Kratki spoj

{SIGNATURE}""",
    },
}


def fill_template(template, variables):
    """Substitute {{VARIABLE}} placeholders; missing values keep their placeholder"""
    message = template['message']
    for name in template.get('variables', []):
        value = variables.get(name)
        if value in (None, ''):
            continue
        message = message.replace('{{' + name + '}}', str(value))
    return message


def find_auto_reply(user_message):
    """First auto-reply whose keyword occurs in the message, or None"""
    normalized = (user_message or '').lower()
    for reply in AUTO_REPLIES.values():
        if any(keyword in normalized for keyword in reply['keywords']):
            return reply['message']
    return None


def get_all_templates():
    return [
        *SERVICE_TEMPLATES.values(),
        *BUSINESS_PARTNER_TEMPLATES.values(),
        *EMERGENCY_TEMPLATES.values(),
    ]


def get_template_by_id(template_id):
    for template in get_all_templates():
        if template['id'] == template_id:
            return template
    return None


def format_phone_number(phone):
    """
    Normalize a Montenegro phone number to +382 international format.

    Unrecognized formats are returned unchanged.
    """
    cleaned = re.sub(r'\D', '', phone or '')
    if cleaned.startswith('382'):
        return f'+{cleaned}'
    if cleaned.startswith(('67', '68', '69')):
        return f'+382{cleaned}'
    if cleaned.startswith(('067', '068', '069')):
        return f'+382{cleaned[1:]}'
    return phone


def format_currency(amount):
    return f'{Decimal(str(amount)):.2f} EUR'
