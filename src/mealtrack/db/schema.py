"""SQLite database schema definitions."""

SCHEMA_SQL = """
-- Reference foods: catalog, custom and ad-hoc (quick add) variants
CREATE TABLE IF NOT EXISTS foods (
    food_id INTEGER PRIMARY KEY AUTOINCREMENT,
    kind TEXT NOT NULL CHECK(kind IN ('catalog', 'custom', 'adhoc')),
    name TEXT NOT NULL,
    serving_size REAL NOT NULL DEFAULT 1.0,
    serving_unit TEXT NOT NULL DEFAULT 'gram',
    calories REAL NOT NULL DEFAULT 0,
    protein REAL NOT NULL DEFAULT 0,
    carbs REAL NOT NULL DEFAULT 0,
    fat REAL NOT NULL DEFAULT 0,
    owner_user_id INTEGER,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_foods_name ON foods(name);
CREATE INDEX IF NOT EXISTS idx_foods_kind ON foods(kind);

-- Meal plan templates
CREATE TABLE IF NOT EXISTS meal_plans (
    meal_plan_id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    description TEXT,
    goal TEXT,
    status TEXT NOT NULL DEFAULT 'draft' CHECK(status IN ('draft', 'published')),
    is_public BOOLEAN DEFAULT FALSE,
    created_by INTEGER,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS daily_plans (
    daily_plan_id INTEGER PRIMARY KEY AUTOINCREMENT,
    meal_plan_id INTEGER NOT NULL,
    position INTEGER NOT NULL CHECK(position BETWEEN 1 AND 7),
    UNIQUE(meal_plan_id, position),
    FOREIGN KEY (meal_plan_id) REFERENCES meal_plans(meal_plan_id)
);

CREATE TABLE IF NOT EXISTS meal_times (
    meal_time_id INTEGER PRIMARY KEY AUTOINCREMENT,
    daily_plan_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    time_of_day TEXT,
    sort_order INTEGER NOT NULL DEFAULT 0,
    FOREIGN KEY (daily_plan_id) REFERENCES daily_plans(daily_plan_id)
);

CREATE INDEX IF NOT EXISTS idx_meal_times_daily_plan ON meal_times(daily_plan_id);

CREATE TABLE IF NOT EXISTS planned_food_items (
    planned_food_item_id INTEGER PRIMARY KEY AUTOINCREMENT,
    meal_time_id INTEGER NOT NULL,
    food_id INTEGER NOT NULL,
    amount REAL NOT NULL CHECK(amount >= 0),
    unit TEXT NOT NULL,
    sort_order INTEGER NOT NULL DEFAULT 0,
    FOREIGN KEY (meal_time_id) REFERENCES meal_times(meal_time_id),
    FOREIGN KEY (food_id) REFERENCES foods(food_id)
);

CREATE INDEX IF NOT EXISTS idx_planned_food_items_meal_time ON planned_food_items(meal_time_id);

-- Recurrence bindings of a user to a template
CREATE TABLE IF NOT EXISTS applied_meal_plans (
    applied_plan_id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    meal_plan_id INTEGER NOT NULL,
    selected_days TEXT NOT NULL,
    weeks_count INTEGER NOT NULL CHECK(weeks_count BETWEEN 1 AND 52),
    start_date DATE NOT NULL,
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    source TEXT NOT NULL CHECK(source IN ('self_applied', 'coach_assigned')),
    assigned_by INTEGER,
    deactivated_on DATE,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (meal_plan_id) REFERENCES meal_plans(meal_plan_id)
);

CREATE INDEX IF NOT EXISTS idx_applied_meal_plans_user ON applied_meal_plans(user_id, is_active);

-- Concrete dated occurrences of a template meal time
CREATE TABLE IF NOT EXISTS scheduled_meals (
    scheduled_meal_id INTEGER PRIMARY KEY AUTOINCREMENT,
    applied_plan_id INTEGER NOT NULL,
    user_id INTEGER NOT NULL,
    daily_plan_id INTEGER NOT NULL,
    meal_time_id INTEGER NOT NULL,
    scheduled_date DATE NOT NULL,
    week_number INTEGER NOT NULL,
    sequence INTEGER NOT NULL DEFAULT 0,
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    is_completed BOOLEAN NOT NULL DEFAULT FALSE,
    completed_at TIMESTAMP,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (applied_plan_id) REFERENCES applied_meal_plans(applied_plan_id),
    FOREIGN KEY (daily_plan_id) REFERENCES daily_plans(daily_plan_id),
    FOREIGN KEY (meal_time_id) REFERENCES meal_times(meal_time_id)
);

CREATE INDEX IF NOT EXISTS idx_scheduled_meals_user_date ON scheduled_meals(user_id, scheduled_date);
CREATE INDEX IF NOT EXISTS idx_scheduled_meals_applied ON scheduled_meals(applied_plan_id);

-- Consumption events, at most one per (scheduled meal, planned item)
CREATE TABLE IF NOT EXISTS consumed_foods (
    consumed_food_id INTEGER PRIMARY KEY AUTOINCREMENT,
    scheduled_meal_id INTEGER NOT NULL,
    planned_food_item_id INTEGER NOT NULL,
    consumed_amount REAL NOT NULL CHECK(consumed_amount >= 0),
    consumed_unit TEXT NOT NULL,
    notes TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    UNIQUE(scheduled_meal_id, planned_food_item_id),
    FOREIGN KEY (scheduled_meal_id) REFERENCES scheduled_meals(scheduled_meal_id),
    FOREIGN KEY (planned_food_item_id) REFERENCES planned_food_items(planned_food_item_id)
);

CREATE INDEX IF NOT EXISTS idx_consumed_foods_meal ON consumed_foods(scheduled_meal_id);

-- Manual (non-scheduled) food log
CREATE TABLE IF NOT EXISTS food_entries (
    entry_id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    food_id INTEGER NOT NULL,
    amount REAL NOT NULL CHECK(amount >= 0),
    unit TEXT NOT NULL,
    meal_type TEXT NOT NULL CHECK(meal_type IN ('breakfast', 'lunch', 'dinner', 'snack', 'other')),
    consumed_on DATE NOT NULL,
    notes TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (food_id) REFERENCES foods(food_id)
);

CREATE INDEX IF NOT EXISTS idx_food_entries_user_date ON food_entries(user_id, consumed_on);

-- Nutrition goals (one active per user)
CREATE TABLE IF NOT EXISTS calorie_goals (
    goal_id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    daily_calories REAL,
    daily_protein REAL,
    daily_carbs REAL,
    daily_fat REAL,
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_calorie_goals_user ON calorie_goals(user_id, is_active);

-- Outcomes of idempotent deletes, keyed by client-generated key.
-- target is the resource the call addressed, e.g. "consumed_food:5"
CREATE TABLE IF NOT EXISTS delete_receipts (
    idempotency_key TEXT PRIMARY KEY,
    target TEXT NOT NULL,
    resource TEXT NOT NULL,
    resource_id INTEGER NOT NULL,
    outcome TEXT NOT NULL CHECK(outcome IN ('deleted', 'already_absent')),
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


def get_schema_sql() -> str:
    """Return the complete schema SQL."""
    return SCHEMA_SQL
