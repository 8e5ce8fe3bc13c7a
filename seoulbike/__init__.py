"""
Seoul Bike Rental Analysis
==========================

Daily demand modelling for the Seoul bike-sharing hourly dataset.

Modules:
    - data_loader: CSV ingestion, cleaning and validation
    - eda: Exploratory Data Analysis and descriptive plots
    - aggregation: Hourly to daily reduction
    - splitting: Stratified train/test split and cross-validation folds
    - recipes: Feature-engineering recipes
    - model: OLS model fitting and coefficients
    - evaluation: Recipe comparison, selection and final fit
    - exceptions: Pipeline error types
"""

__version__ = "1.0.0"
__author__ = "Bike Demand Analytics Team"
