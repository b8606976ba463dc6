import numpy as np
import pandas as pd
import time
from dtreepy import TreeClassifier, enable_logging

# Generate synthetic data
n_samples = 1000
rng = np.random.default_rng(42)
# Feature 1: "City" (high cardinality - 20 categories)
cities = [f"City_{i}" for i in range(20)]
# Feature 2: "Age" (numeric)
ages = rng.integers(18, 70, size=n_samples)

# Assign target based on groups of cities
X_cat = rng.choice(cities, size=n_samples)
y = []
for city, age in zip(X_cat, ages):
    city_idx = int(city.split('_')[1])
    prob = 0.8 if city_idx < 10 else 0.2
    # Add some noise/interaction with age
    if age > 50: prob += 0.1
    y.append(1 if rng.random() < prob else 0)

df_syn = pd.DataFrame({'City': X_cat, 'Age': ages})
y_syn = np.array(y)

print("Data Sample:")
print(df_syn.head())

clf = TreeClassifier(min_leaf_size=10, feature_names=list(df_syn.columns),
                     categorical_features=["City"])

print("Starting fit...")
t0 = time.time()
with enable_logging(level="INFO"):
    clf.fit(df_syn.values, y_syn)
print(f"Training time: {time.time() - t0:.4f}s")
print(f"Training accuracy: {clf.score(df_syn.values, y_syn):.3f}")
for rule in clf.export_rules(class_names=["no", "yes"])[:10]:
    print(rule)

# Cities never seen in training are answered by the node where routing stops.
print(clf.predict_proba(np.array([["City_99", 30]], dtype=object)))
