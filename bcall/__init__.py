"""B-Call: legislator ideology and cohesion scores with pivot-anchored voting blocs."""
