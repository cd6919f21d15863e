from job_feed.services.relevance import filter_listings, is_relevant, meets_price_floor


def test_technical_skill_is_relevant():
    assert is_relevant({"title": "Build an app", "skills": ["Python"]})
    # Substring match works both ways
    assert is_relevant({"title": "Dashboard", "skills": ["React.js"]})
    assert is_relevant({"title": "Scripts", "skills": ["Go"]})


def test_exclusion_wins_over_allowed_skill():
    listing = {"title": "Growth work", "skills": ["Python", "Marketing"]}
    assert not is_relevant(listing)


def test_excluded_keyword_in_title():
    assert not is_relevant({"title": "Copywriting for landing page", "skills": ["HTML"]})
    assert not is_relevant({"title": "Traducción de manual técnico", "skills": []})


def test_without_skills_searches_title_and_description():
    assert is_relevant({"title": "Need a Laravel developer", "description": "", "skills": []})
    assert is_relevant({"title": "Proyecto", "description": "Migrar base de datos a PostgreSQL"})
    assert not is_relevant({"title": "Help moving boxes", "description": "Two hours of work"})


def test_non_technical_skills_are_not_relevant():
    assert not is_relevant({"title": "Cleanup", "skills": ["Excel", "Research"]})


def test_price_floor_rejects_cheap_work():
    assert not meets_price_floor({"price": "$30 - $60 USD"})
    assert meets_price_floor({"price": "$50 USD"})
    assert meets_price_floor({"price": "$1,500 USD"})
    assert meets_price_floor({"price": "$30 USD"}, floor=20)


def test_price_floor_fails_open():
    assert meets_price_floor({"price": "Presupuesto a convenir"})
    assert meets_price_floor({"price": "No especificado"})
    assert meets_price_floor({})
    assert meets_price_floor({"budget": "USD 100"})


def test_filter_listings():
    listings = [
        {"title": "Python scraper", "skills": ["Python"], "price": "$250 USD"},
        {"title": "Python scraper cheap", "skills": ["Python"], "price": "$10 USD"},
        {"title": "Ventas por teléfono", "skills": ["Sales"], "price": "$500 USD"},
        {"title": "Error al obtener proyectos", "skills": [], "price": "N/A", "error": "HTTP 500"},
    ]

    kept = filter_listings(listings, floor=50, source_name="Freelancer")

    assert [k["title"] for k in kept] == ["Python scraper", "Error al obtener proyectos"]
