"""
Bundled South African court tariffs (2024/2025).

Based on the LSSA Legal Costs Guide and official court schedules. Records use
the ingestion shape accepted by TariffRepository.from_records:
(court_type, scale, effective_from, effective_to?, items[]).
"""

COUNSEL_COURT = "COUNSEL"
COUNSEL_SCALE = "ALL"


def _item(code, label, description, rate, unit, category, subcategory, vat=True, **limits):
    return {
        "item_code": code,
        "label": label,
        "description": description,
        "rate": rate,
        "unit": unit,
        "vat_applicable": vat,
        "category": category,
        "subcategory": subcategory,
        **limits,
    }


_PERUSAL = ("Perusal of documents", "Reading and examining documents, correspondence, pleadings")
_DRAFTING = ("Drafting of documents", "Preparation of pleadings, correspondence, affidavits")
_CONSULT = ("Attendance at consultations", "Meetings with clients, witnesses, experts")

MAGISTRATES_COURT = [
    {
        "court_type": "MC",
        "scale": "A",
        "effective_from": "2024-09-01",
        "items": [
            _item("1.1", *_PERUSAL, "285.00", "per page", "fees", "preparation"),
            _item("1.2", *_DRAFTING, "570.00", "per page", "fees", "preparation"),
            _item("1.3", *_CONSULT, "2280.00", "per hour", "fees", "attendance", minimum_units="0.25"),
            _item(
                "1.4",
                "Telephone consultations",
                "Telephone calls with clients, opponents, court officials",
                "1140.00",
                "per hour",
                "fees",
                "attendance",
                minimum_units="0.1",
            ),
            _item(
                "2.1",
                "Court attendance - unopposed matters",
                "Attendance at court for unopposed applications",
                "1710.00",
                "per hour",
                "fees",
                "court",
                minimum_units="1",
            ),
            _item(
                "2.2",
                "Court attendance - opposed matters",
                "Attendance at court for opposed matters, trials",
                "2280.00",
                "per hour",
                "fees",
                "court",
                minimum_units="1",
            ),
            _item(
                "2.3",
                "Waiting time at court",
                "Time spent waiting at court when matter is postponed",
                "1140.00",
                "per hour",
                "fees",
                "court",
                minimum_units="0.5",
            ),
            _item(
                "3.1",
                "Travel time",
                "Time spent travelling to court, consultations",
                "1140.00",
                "per hour",
                "fees",
                "travel",
            ),
            _item(
                "3.2",
                "Travel expenses",
                "Actual travel costs, mileage allowance",
                "4.50",
                "per km",
                "disbursements",
                "travel",
            ),
            _item(
                "4.1",
                "Court filing fees",
                "Official court fees for filing documents",
                "0",
                "actual cost",
                "disbursements",
                "court_fees",
                vat=False,
            ),
            _item(
                "4.2",
                "Sheriff's fees",
                "Service of court documents by sheriff",
                "0",
                "actual cost",
                "disbursements",
                "service",
                vat=False,
            ),
            _item("4.3", "Photocopying", "Copying of documents, court papers", "2.50", "per page", "disbursements", "admin"),
            _item(
                "4.4",
                "Telephone calls",
                "Long distance calls, international calls",
                "0",
                "actual cost",
                "disbursements",
                "communication",
            ),
        ],
    },
    {
        "court_type": "MC",
        "scale": "B",
        "effective_from": "2024-09-01",
        "items": [
            _item("1.1", *_PERUSAL, "380.00", "per page", "fees", "preparation"),
            _item("1.2", *_DRAFTING, "760.00", "per page", "fees", "preparation"),
            _item("1.3", *_CONSULT, "3040.00", "per hour", "fees", "attendance", minimum_units="0.25"),
            _item(
                "2.1",
                "Court attendance - unopposed matters",
                "Attendance at court for unopposed applications",
                "2280.00",
                "per hour",
                "fees",
                "court",
                minimum_units="1",
            ),
            _item(
                "2.2",
                "Court attendance - opposed matters",
                "Attendance at court for opposed matters, trials",
                "3040.00",
                "per hour",
                "fees",
                "court",
                minimum_units="1",
            ),
        ],
    },
]

HIGH_COURT = [
    {
        "court_type": "HC",
        "scale": "A",
        "effective_from": "2024-09-01",
        "items": [
            _item("1.1", *_PERUSAL, "380.00", "per page", "fees", "preparation"),
            _item("1.2", *_DRAFTING, "760.00", "per page", "fees", "preparation"),
            _item("1.3", *_CONSULT, "3040.00", "per hour", "fees", "attendance", minimum_units="0.25"),
            _item(
                "2.1",
                "Court attendance - applications",
                "Attendance at court for applications, case management",
                "3800.00",
                "per hour",
                "fees",
                "court",
                minimum_units="1",
            ),
            _item(
                "2.2",
                "Court attendance - trials",
                "Attendance at court for trials, hearings",
                "4560.00",
                "per hour",
                "fees",
                "court",
                minimum_units="1",
            ),
            _item("2.3", "Day fees", "Full day attendance at court proceedings", "22800.00", "per day", "fees", "court"),
        ],
    },
    {
        "court_type": "HC",
        "scale": "B",
        "effective_from": "2024-09-01",
        "items": [
            _item("1.1", *_PERUSAL, "570.00", "per page", "fees", "preparation"),
            _item("1.2", *_DRAFTING, "1140.00", "per page", "fees", "preparation"),
            _item(
                "2.1",
                "Court attendance - applications",
                "Attendance at court for applications, case management",
                "5700.00",
                "per hour",
                "fees",
                "court",
                minimum_units="1",
            ),
            _item(
                "2.2",
                "Court attendance - trials",
                "Attendance at court for trials, hearings",
                "6840.00",
                "per hour",
                "fees",
                "court",
                minimum_units="1",
            ),
        ],
    },
]

SUPREME_COURT_OF_APPEAL = [
    {
        "court_type": "SCA",
        "scale": "A",
        "effective_from": "2024-09-01",
        "items": [
            _item("1.1", *_PERUSAL, "570.00", "per page", "fees", "preparation"),
            _item("1.2", *_DRAFTING, "1140.00", "per page", "fees", "preparation"),
            _item(
                "2.1",
                "Court attendance",
                "Attendance at SCA hearings",
                "9120.00",
                "per hour",
                "fees",
                "court",
                minimum_units="1",
            ),
        ],
    },
]

# Counsel fees sit outside the court schedules; VAT may not apply.
COUNSEL = [
    {
        "court_type": COUNSEL_COURT,
        "scale": COUNSEL_SCALE,
        "effective_from": "2024-09-01",
        "items": [
            _item(
                "C1",
                "Junior Counsel - Opinion",
                "Written legal opinion by junior counsel",
                "5000.00",
                "per opinion",
                "counsel",
                "opinion",
                vat=False,
            ),
            _item(
                "C2",
                "Senior Counsel - Opinion",
                "Written legal opinion by senior counsel",
                "12000.00",
                "per opinion",
                "counsel",
                "opinion",
                vat=False,
            ),
            _item(
                "C3",
                "Junior Counsel - Court appearance",
                "Court appearance by junior counsel",
                "8000.00",
                "per day",
                "counsel",
                "appearance",
                vat=False,
            ),
            _item(
                "C4",
                "Senior Counsel - Court appearance",
                "Court appearance by senior counsel",
                "20000.00",
                "per day",
                "counsel",
                "appearance",
                vat=False,
            ),
        ],
    },
]

ALL_TARIFFS = MAGISTRATES_COURT + HIGH_COURT + SUPREME_COURT_OF_APPEAL + COUNSEL

COURT_TYPES = {
    "MC": "Magistrates' Court",
    "HC": "High Court",
    "SCA": "Supreme Court of Appeal",
    "CC": "Constitutional Court",
}
