from HetDSGE.indices import IndexRegistryBuilder
from HetDSGE.models import HetDSGEGovDebt

# Number of decimal places to which floating point results are compared
HETDSGE_PRECISION = 7


def gov_debt_builder(n_anticipated_shocks=0):
    """
    An IndexRegistryBuilder holding the declarations of HetDSGEGovDebt.
    """
    builder = IndexRegistryBuilder()
    for name, function_valued in HetDSGEGovDebt.states:
        builder.add_state(name, function_valued)
    for name, function_valued in HetDSGEGovDebt.jumps:
        builder.add_jump(name, function_valued)
    for name, kind in HetDSGEGovDebt.equilibrium_conditions:
        builder.add_equilibrium_condition(name, kind)
    for name in HetDSGEGovDebt.exogenous_shocks:
        builder.add_exogenous_shock(name)
    for i in range(1, n_anticipated_shocks + 1):
        builder.add_expected_shock(f"rm_shl{i}")
    for name in HetDSGEGovDebt.observables:
        builder.add_observable(name)
    return builder
