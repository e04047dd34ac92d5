from HetDSGE.models.het_dsge_gov_debt import AGGREGATE_STEADY_STATE, HetDSGEGovDebt

__all__ = ["HetDSGEGovDebt", "AGGREGATE_STEADY_STATE"]
