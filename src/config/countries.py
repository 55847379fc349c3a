"""Static country list and country -> international dialing code lookup."""

PHONE_CODES: dict[str, str] = {
    "United States": "+1",
    "United Kingdom": "+44",
    "Canada": "+1",
    "Australia": "+61",
    "Germany": "+49",
    "France": "+33",
    "Italy": "+39",
    "Spain": "+34",
    "Netherlands": "+31",
    "Belgium": "+32",
    "Switzerland": "+41",
    "Austria": "+43",
    "Sweden": "+46",
    "Norway": "+47",
    "Denmark": "+45",
    "Finland": "+358",
    "Poland": "+48",
    "Portugal": "+351",
    "Greece": "+30",
    "Ireland": "+353",
    "India": "+91",
    "China": "+86",
    "Japan": "+81",
    "South Korea": "+82",
    "Singapore": "+65",
    "Malaysia": "+60",
    "Thailand": "+66",
    "Indonesia": "+62",
    "Philippines": "+63",
    "Vietnam": "+84",
    "Brazil": "+55",
    "Mexico": "+52",
    "Argentina": "+54",
    "Chile": "+56",
    "Colombia": "+57",
    "South Africa": "+27",
    "Egypt": "+20",
    "Nigeria": "+234",
    "Kenya": "+254",
    "Morocco": "+212",
    "Russia": "+7",
    "Turkey": "+90",
    "Saudi Arabia": "+966",
    "UAE": "+971",
    "Israel": "+972",
    "New Zealand": "+64",
    "Bangladesh": "+880",
    "Pakistan": "+92",
    "Sri Lanka": "+94",
    "Nepal": "+977",
}

COUNTRIES: tuple[str, ...] = tuple(PHONE_CODES)
