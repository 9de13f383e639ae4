from decimal import Decimal

# Canonical methodology catalog for onboarding.
# required_documents_count drives the submission warning and the approval guard;
# review_period_days drives the overdue flag for submitted applications.
METHODOLOGY_CATALOG = [
    {
        "id": "methodology-123",
        "name": "Carbon Reduction Methodology",
        "version": "1.0",
        "max_units": Decimal("100000"),
        "required_documents_count": 3,
        "review_period_days": 90,
        "active": True,
    },
    {
        "id": "methodology-1.1",
        "name": "Solar hot water systems",
        "version": "1.1",
        "max_units": Decimal("25000"),
        "required_documents_count": 2,
        "review_period_days": 60,
        "active": True,
    },
    {
        "id": "methodology-2.1",
        "name": "Solar photovoltaic systems",
        "version": "2.1",
        "max_units": Decimal("50000"),
        "required_documents_count": 3,
        "review_period_days": 60,
        "active": True,
    },
    {
        "id": "methodology-3.1",
        "name": "Wind energy generation",
        "version": "3.1",
        "max_units": Decimal("150000"),
        "required_documents_count": 4,
        "review_period_days": 90,
        "active": True,
    },
    {
        "id": "methodology-4.1",
        "name": "Landfill gas capture",
        "version": "4.1",
        "max_units": Decimal("200000"),
        "required_documents_count": 4,
        "review_period_days": 90,
        "active": True,
    },
    {
        "id": "methodology-5.1",
        "name": "Energy efficiency",
        "version": "5.1",
        "max_units": Decimal("75000"),
        "required_documents_count": 3,
        "review_period_days": 60,
        "active": True,
    },
    {
        "id": "methodology-6.1",
        "name": "Forest regeneration",
        "version": "6.1",
        "max_units": Decimal("500000"),
        "required_documents_count": 5,
        "review_period_days": 120,
        "active": True,
    },
    {
        "id": "methodology-7.1",
        "name": "Soil carbon",
        "version": "7.1",
        "max_units": Decimal("300000"),
        "required_documents_count": 5,
        "review_period_days": 120,
        "active": True,
    },
    {
        "id": "methodology-8.1",
        "name": "Livestock methane reduction",
        "version": "8.1",
        "max_units": Decimal("100000"),
        "required_documents_count": 4,
        "review_period_days": 90,
        "active": True,
    },
    {
        "id": "methodology-9.1",
        "name": "Transport efficiency",
        "version": "9.1",
        "max_units": Decimal("50000"),
        "required_documents_count": 3,
        "review_period_days": 90,
        "active": False,
    },
    {
        "id": "methodology-10.1",
        "name": "Industrial efficiency",
        "version": "10.1",
        "max_units": Decimal("250000"),
        "required_documents_count": 4,
        "review_period_days": 90,
        "active": False,
    },
]
