"""
Example: simple and stratified randomization of the Balsakhi schools

Downloads the J-PAL randomization exercise, randomizes the schools once
without strata and once within language x gender strata, and prints how
many schools each stratum sends to treatment and control.
"""

from strata_assign.datasets import fetch_dataset, load_dataset
from strata_assign.randomize import RandomizationConfig, Randomizer

print("Fetching the Balsakhi dataset...")
path = fetch_dataset(workdir="data")
df = load_dataset(path)
print(f"Loaded {len(df)} schools")

# Simple randomization: one stratum holding every school
simple = Randomizer(RandomizationConfig(id_column="schoolid", seed=20110402)).run(df, verbose=True)
print(simple.assignments.head())

# Two random keys, for datasets where the first key may tie
two_keys = RandomizationConfig(id_column="schoolid", seed=20110402, random_keys=2)
Randomizer(two_keys).run(df, verbose=True)

# Stratified randomization: balance is guaranteed within each language x gender cell
stratified = Randomizer(
    RandomizationConfig(
        id_column="schoolid",
        treatment_column="treatment_stratified",
        strata=["language", "gender"],
        seed=20110402,
    )
).run(df, verbose=True)
print(stratified.strata_table.to_string(index=False))
