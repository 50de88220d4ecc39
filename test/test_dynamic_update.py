import numpy as np

from navdt.grid import triangulation
from navdt.spatial import geometry
from navdt.utils import circular_pairs

TriangulationGraph=triangulation.TriangulationGraph

def init(boundary,**kw):
    tg=TriangulationGraph(post_check=True)
    tg.init_triangulation(boundary,**kw)
    return tg

room=[(0,0),(120,0),(120,120),(0,120)]
tile=[(40,40),(80,40),(80,80),(40,80)]
tile_edges=list(circular_pairs(tile))

def reachable(graph,start):
    seen=set([start])
    stack=[start]
    while stack:
        p=stack.pop()
        for q in graph.neighbors(p):
            if q not in seen:
                seen.add(q)
                stack.append(q)
    return seen

def test_tile_toggle():
    tg=init(room)
    tg.dynamic_update(constraining_edges=tile_edges,add_vertices=tile)
    assert tg.num_vertices()==8
    assert tg.num_fixed_edges()==4
    for e in tile_edges:
        assert tg.is_fixed(e)

    # the planner can't get into or out of the tile
    inside=tg.polypoint_at((60,55))
    outside=tg.polypoint_at((10,20))
    in_reach=reachable(tg.polypoints,inside)
    assert len(in_reach)==2
    assert outside not in in_reach
    assert len(reachable(tg.polypoints,outside))==tg.num_triangles()-2

    # corners can't go while they still hold fixed edges
    try:
        tg.dynamic_update(remove_vertices=[(40,40)])
        assert False
    except tg.BadConstraint:
        pass
    assert tg.num_vertices()==8

    tg.dynamic_update(unfix_edges=tile_edges,remove_vertices=tile)
    assert tg.num_vertices()==4
    assert tg.num_triangles()==2
    assert tg.num_fixed_edges()==0
    assert tg.polypoints.num_edges()==1

def test_update_ordering():
    # vertices are added before the constraints which need them
    tg=init(room)
    tg.dynamic_update(constraining_edges=[((30,30),(90,60))],
                      add_vertices=[(30,30),(90,60)])
    assert tg.is_connected((30,30),(90,60))
    # unfixing happens before removal in the same update
    tg.dynamic_update(unfix_edges=[((30,30),(90,60))],
                      remove_vertices=[(30,30),(90,60)])
    assert tg.num_vertices()==4

def test_update_accepts_iterators():
    tg=init(room)
    tg.dynamic_update(add_vertices=iter([(10,10),(20,50)]))
    assert tg.num_vertices()==6

def test_random_toggles():
    rs=np.random.RandomState(37)
    tg=init([(0,0),(10,0),(10,10),(0,10)])
    present=set()
    for step in range(120):
        p=(int(rs.randint(1,10)),int(rs.randint(1,10)))
        if p in present:
            tg.dynamic_update(remove_vertices=[p])
            present.remove(p)
        else:
            tg.dynamic_update(add_vertices=[p])
            present.add(p)
        assert tg.num_vertices()==4+len(present)
        assert tg.num_triangles()==2+2*len(present)

    tg.dynamic_update(remove_vertices=list(present))
    assert tg.num_vertices()==4
    assert tg.num_triangles()==2

def test_storage_stays_bounded():
    tg=TriangulationGraph()
    tg.init_triangulation(room)
    for step in range(60):
        tg.dynamic_update(constraining_edges=tile_edges,add_vertices=tile)
        tg.dynamic_update(unfix_edges=tile_edges,remove_vertices=tile)
        assert len(tg.nodes)<=2*tg.num_vertices()
        assert len(tg.edges)<=2*tg.num_edges()
        assert len(tg.cells)<=2*tg.num_triangles()
        assert len(tg.polypoints.nodes)==len(tg.cells)
        assert len(tg.fixed_edges.nodes)<=8
    tg.dynamic_update(constraining_edges=tile_edges,add_vertices=tile)
    tg.check_invariants()
    assert len(reachable(tg.polypoints,tg.polypoint_at((60,55))))==2

def test_renumber():
    tg=init(room,vertices=[(30,30),(90,30),(60,90)])
    tg.delaunay_remove_vertex((30,30))
    tris=set(tg.triangles)
    maps=tg.renumber()
    assert (maps['node_map']<0).sum()==1
    assert not tg.nodes['deleted'].any()
    assert not tg.cells['deleted'].any()
    assert len(tg.cells)==tg.num_triangles()
    assert set(tg.triangles)==tris
    tg.check_invariants()
    # still usable after handles change
    tg.delaunay_add_vertex((30,30))
    tg.delaunay_add_constraint_edge( ((30,30),(90,30)) )
    tg.check_invariants()

def test_random_walls():
    # vertex toggles mixed with constraints between present vertices,
    # and unfixing of existing constraints
    rs=np.random.RandomState(11)
    tg=init([(0,0),(10,0),(10,10),(0,10)])
    present=set()
    for step in range(150):
        p=(int(rs.randint(1,10)),int(rs.randint(1,10)))
        if p in present:
            walls=[e for e in tg.get_fixed_edges() if p in e]
            tg.dynamic_update(unfix_edges=walls,remove_vertices=[p])
            present.remove(p)
        else:
            tg.dynamic_update(add_vertices=[p])
            present.add(p)

        choice=rs.rand()
        if choice<0.4 and len(present)>=2:
            pnts=sorted(present)
            i,j=rs.choice(len(pnts),2,replace=False)
            e=(pnts[i],pnts[j])
            blocked=( any(geometry.on_segment_interior(q,e) for q in tg.get_vertices()) or
                      any(geometry.segments_cross(e,f) for f in tg.get_fixed_edges()) )
            if not blocked:
                tg.dynamic_update(constraining_edges=[e])
                assert tg.is_fixed(e)
        elif choice<0.6 and tg.num_fixed_edges()>0:
            walls=tg.get_fixed_edges()
            e=walls[rs.randint(len(walls))]
            tg.dynamic_update(unfix_edges=[e])
            assert not tg.is_fixed(e)

        assert tg.num_vertices()==4+len(present)
        assert tg.num_triangles()==2+2*len(present)

    tg.dynamic_update(unfix_edges=tg.get_fixed_edges(),remove_vertices=list(present))
    assert tg.num_triangles()==2
    assert tg.num_fixed_edges()==0
