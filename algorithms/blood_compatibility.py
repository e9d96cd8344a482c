"""
Blood Type Compatibility Helper
Determines which donor blood types can donate to which recipient blood types
"""

BLOOD_GROUPS = ('A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-')

# Blood type compatibility matrix (donor -> recipients)
COMPATIBILITY = {
    'O-': frozenset(['O-', 'O+', 'A-', 'A+', 'B-', 'B+', 'AB-', 'AB+']),  # Universal donor
    'O+': frozenset(['O+', 'A+', 'B+', 'AB+']),
    'A-': frozenset(['A-', 'A+', 'AB-', 'AB+']),
    'A+': frozenset(['A+', 'AB+']),
    'B-': frozenset(['B-', 'B+', 'AB-', 'AB+']),
    'B+': frozenset(['B+', 'AB+']),
    'AB-': frozenset(['AB-', 'AB+']),
    'AB+': frozenset(['AB+']),  # Universal recipient
}

# Inverse matrix (recipient -> donors), derived so both directions always agree
RECEIVES_FROM = {
    recipient: frozenset(donor for donor, recipients in COMPATIBILITY.items() if recipient in recipients)
    for recipient in BLOOD_GROUPS
}

_ENUM_SPELLINGS = {
    'A_POSITIVE': 'A+', 'A_NEGATIVE': 'A-',
    'B_POSITIVE': 'B+', 'B_NEGATIVE': 'B-',
    'AB_POSITIVE': 'AB+', 'AB_NEGATIVE': 'AB-',
    'O_POSITIVE': 'O+', 'O_NEGATIVE': 'O-',
}


def normalize_blood_group(value):
    """
    Normalise user input to one of BLOOD_GROUPS

    Accepts any case, the unicode minus sign and the enum spelling
    used by older clients (e.g. 'O_NEGATIVE').

    Raises:
        ValueError: if the value is not a known blood group
    """
    if value is None:
        raise ValueError("Blood group is required")

    cleaned = str(value).strip().upper().replace('−', '-').replace(' ', '')
    cleaned = _ENUM_SPELLINGS.get(cleaned, cleaned)

    if cleaned not in COMPATIBILITY:
        raise ValueError(f"Invalid blood group: {value}")
    return cleaned


def is_compatible(donor_blood_type, recipient_blood_type):
    """
    Check if donor blood type is compatible with recipient

    Args:
        donor_blood_type: Donor's blood type (e.g., 'O+')
        recipient_blood_type: Recipient's blood type (e.g., 'A+')

    Returns:
        Boolean: True if compatible, False otherwise
    """
    if donor_blood_type not in COMPATIBILITY:
        return False

    return recipient_blood_type in COMPATIBILITY[donor_blood_type]


def compatible_donors(recipient_blood_type):
    """
    Get the blood types that can donate to recipient

    Args:
        recipient_blood_type: Recipient's blood type

    Returns:
        frozenset of compatible donor blood types
    """
    try:
        return RECEIVES_FROM[recipient_blood_type]
    except KeyError:
        raise ValueError(f"Invalid recipient blood group: {recipient_blood_type}")


def compatible_recipients(donor_blood_type):
    """
    Get the blood types that can receive from donor

    Args:
        donor_blood_type: Donor's blood type

    Returns:
        frozenset of compatible recipient blood types
    """
    try:
        return COMPATIBILITY[donor_blood_type]
    except KeyError:
        raise ValueError(f"Invalid donor blood group: {donor_blood_type}")
