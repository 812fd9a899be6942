"""
FundWars Routers Package

One APIRouter per domain, mounted by fundwars.main.
"""
