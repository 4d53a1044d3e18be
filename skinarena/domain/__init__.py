"""Domain layer (pure game rules).

- Roulette wheel, weighted draws, leveling and battle settlement live here.
- Nothing in this package touches the DB, FastAPI, redis or the scheduler.
- Randomness is always passed in (a numpy Generator or anything with random()/integers()).
"""
