"""
BuildMarket Backend: Services Package
======================================

What:  Business logic between the routes and the database.

    compatibility        pure playstyle scorer (no I/O)
    profile_service      buyer playstyles
    build_service        listings and the scored marketplace feed
    purchase_service     sales, purchase history, earnings
    moderation_service   review queue, featuring, flags
    result               ServiceResult / ErrorKind returned by the above

Services are plain classes built once by create_app(); each method takes
the request's AsyncSession.
"""
